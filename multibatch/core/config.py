"""Settings for multibatch.

Values are read from the environment (``MULTIBATCH_*``) or a local ``.env``
file, falling back to the field defaults below:

    MULTIBATCH_BATCH_HARD_LIMIT=500
    MULTIBATCH_FAILURE_POLICY=retain_failed
    MULTIBATCH_MAX_COMMIT_CONCURRENCY=8
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from multibatch.core.enums import FailurePolicy

# Max write operations per batch (see https://firebase.google.com/docs/firestore/quotas)
BATCH_LIMIT = 500


class Settings(BaseSettings):
    """Process-wide defaults for MultiBatch instances."""

    model_config = SettingsConfigDict(
        env_prefix="MULTIBATCH_",
        env_file=".env",
        extra="ignore",
    )

    BATCH_HARD_LIMIT: int = Field(
        BATCH_LIMIT,
        description="Hard maximum operations per batch when the connection does not advertise one",
    )
    FAILURE_POLICY: FailurePolicy = Field(
        FailurePolicy.PRESERVE, description="What to keep staged after a failed commit"
    )
    MAX_COMMIT_CONCURRENCY: Optional[int] = Field(
        None, description="Cap on batch commits in flight at once (None = all at once)"
    )

    COMMIT_RETRY_ATTEMPTS: int = Field(3, description="Attempts made by commit_with_retry")
    COMMIT_RETRY_MIN_WAIT: float = 0.5
    COMMIT_RETRY_MAX_WAIT: float = 10.0

    LOG_LEVEL: str = "INFO"
    LOCAL_DEVELOPMENT: bool = False

    @field_validator("BATCH_HARD_LIMIT", "COMMIT_RETRY_ATTEMPTS")
    @classmethod
    def _must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("MAX_COMMIT_CONCURRENCY")
    @classmethod
    def _concurrency_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("must be a positive integer or unset")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        return v.upper()


settings = Settings()
