# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Custom exception hierarchy for Coffer.

Every failure of the envelope protocol is surfaced as one of these types,
unchanged, to the immediate caller. Nothing here is retried. Underlying I/O failures are
plain :class:`OSError` and propagate as-is.
"""

from __future__ import annotations


class CofferException(Exception):  # noqa: N818
    """Base exception for all Coffer errors.

    All Coffer-specific exceptions should inherit from this class.
    """

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class FormatError(CofferException):
    """Exception for malformed envelopes.

    Raised when:
    - The header or footer sentinel is missing or wrong
    - A metadata line lacks the product tag
    - Metadata does not parse into the expected structure
    - A body line is not valid base64 or the body does not decrypt
    """


class InvalidSignatureError(CofferException):
    """Exception for a signature that does not verify.

    ``index`` is the position of the failing recipient entry, ``None`` when
    the signature over the whole recipient list is the one that failed.
    """

    def __init__(self, message: str, index: int | None = None, email: str | None = None):
        details: dict = {}
        if index is not None:
            details["index"] = index
        if email:
            details["email"] = email
        super().__init__(message, details)
        self.index = index
        self.email = email


class AccessDeniedError(CofferException):
    """Exception raised when the caller is not among the recipients."""

    def __init__(self, message: str, public_key: str | None = None):
        details = {}
        if public_key:
            details["public_key"] = public_key
        super().__init__(message, details)
        self.public_key = public_key


class RecipientError(CofferException):
    """Exception for an invalid recipient set.

    Raised when:
    - A reseal would leave the envelope with no recipient
    - The same public key appears twice
    - A recipient to remove is not present
    """


class EnvelopeStateError(CofferException):
    """Exception for an operation attempted in the wrong session state."""

    def __init__(self, message: str, state: str | None = None):
        details = {}
        if state:
            details["state"] = state
        super().__init__(message, details)
        self.state = state


class ConfigException(CofferException):
    """Exception for configuration errors.

    Raised when:
    - The local identity file is missing or unreadable
    - The identity file already exists and overwriting was not requested
    - A setting has an unusable value
    """

    def __init__(self, message: str, path: str | None = None):
        details = {}
        if path:
            details["path"] = path
        super().__init__(message, details)
        self.path = path


class ConflictError(CofferException):
    """Exception for conflict errors.

    Raised when:
    - A contact alias is already taken
    - An email matches more than one contact
    """

    def __init__(self, message: str, existing_id: str | None = None):
        details = {}
        if existing_id:
            details["existing_id"] = existing_id
        super().__init__(message, details)
        self.existing_id = existing_id


class NotFoundError(CofferException):
    """Exception for resource not found errors.

    Raised when:
    - A contact alias or email is not in the address book
    """

    def __init__(self, resource_type: str, resource_id: str):
        message = f"{resource_type} not found: {resource_id}"
        details = {
            "resource_type": resource_type,
            "resource_id": resource_id,
        }
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id
