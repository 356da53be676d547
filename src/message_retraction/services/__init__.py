"""Service layer for the message retraction API."""
