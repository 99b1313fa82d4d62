# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Ambient services shared by the coffer packages: errors, config, logging."""

from .exceptions import (
    AccessDeniedError,
    CofferException,
    ConfigException,
    ConflictError,
    EnvelopeStateError,
    FormatError,
    InvalidSignatureError,
    NotFoundError,
    RecipientError,
)

__all__ = [
    "AccessDeniedError",
    "CofferException",
    "ConfigException",
    "ConflictError",
    "EnvelopeStateError",
    "FormatError",
    "InvalidSignatureError",
    "NotFoundError",
    "RecipientError",
]
