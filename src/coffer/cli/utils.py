"""Utility functions for the coffer CLI."""

from __future__ import annotations

import json
import logging
from typing import Any, TextIO

from ..core.config import get_config
from ..core.exceptions import FormatError
from ..identity.contacts import ContactBook
from ..identity.keys import Identity, RecipientCandidate
from ..identity.store import load_identity

logger = logging.getLogger(__name__)


def get_identity() -> Identity:
    """Load the identity named by the current config."""
    return load_identity(get_config().identity_file)


def get_contacts() -> ContactBook:
    """Load the contact book named by the current config."""
    return ContactBook.load(get_config().contacts_file)


def envelope_options() -> dict[str, Any]:
    """Format settings passed to every envelope operation."""
    config = get_config()
    return {"product": config.product, "chunk_size": config.chunk_size}


def read_invite(stream: TextIO) -> RecipientCandidate:
    """Parse an invite (as printed by ``coffer invite``) from *stream*."""
    try:
        data = json.load(stream)
    except json.JSONDecodeError as e:
        raise FormatError(f"Invite is not valid JSON: {e}") from e
    return RecipientCandidate.from_dict(data)
