"""Message retraction service: delete-for-everyone with preview repair."""

__version__ = "0.1.0"
