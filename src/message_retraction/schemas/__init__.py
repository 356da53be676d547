"""Pydantic schemas for the message retraction API."""

from .deletion import DeleteMessageRequest, DeleteMessageResponse, ErrorResponse

__all__ = ["DeleteMessageRequest", "DeleteMessageResponse", "ErrorResponse"]
