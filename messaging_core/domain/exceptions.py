"""Typed failures raised by messaging operations.

Every error except :class:`TransientStoreError` is terminal: callers surface
the message to the user and do not retry.
"""

from __future__ import annotations


class MessagingError(Exception):
    """Base class for all messaging failures."""

    code = "messaging_error"
    default_message = "The messaging request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NotFound(MessagingError):
    code = "not_found"
    default_message = "The requested resource does not exist"


class PermissionDenied(MessagingError):
    code = "permission_denied"
    default_message = "You are not allowed to perform this action"


class NotAParticipant(PermissionDenied):
    code = "not_a_participant"
    default_message = "You are not a participant in this conversation"


class BlockedError(PermissionDenied):
    code = "blocked"
    default_message = "Messaging between these users is blocked"


class AttachmentRejected(MessagingError):
    """Raised before upload when an attachment fails size or type checks."""

    code = "attachment_rejected"
    default_message = "The attachment was rejected"

    def __init__(self, message: str | None = None, *, too_large: bool = False) -> None:
        super().__init__(message)
        self.too_large = too_large


class InvalidRequest(MessagingError, ValueError):
    code = "invalid_request"
    default_message = "The request is not valid"


class TransientStoreError(MessagingError):
    code = "transient_store_error"
    default_message = "The message store is temporarily unavailable, please try again"


__all__ = [
    "MessagingError",
    "NotFound",
    "PermissionDenied",
    "NotAParticipant",
    "BlockedError",
    "AttachmentRejected",
    "InvalidRequest",
    "TransientStoreError",
]
