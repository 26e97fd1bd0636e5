"""Mock MQ Manager - an in-memory IBM MQ style queue manager with stub imposters."""

__version__ = "1.0.0"
