"""Core configuration, logging and exceptions for multibatch."""
