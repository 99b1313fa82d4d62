"""Contact address book.

Maps local aliases to :class:`RecipientCandidate` records received as
invites. Every candidate is signature-checked on the way in; the book is a
plain JSON object keyed by alias.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from ..core.exceptions import ConfigException, ConflictError, InvalidSignatureError, NotFoundError
from ..core.files import atomic_write
from .keys import RecipientCandidate

logger = logging.getLogger(__name__)


class ContactBook:
    """Alias → recipient candidate mapping backed by a JSON file.

    Typical workflow::

        book = ContactBook.load(path)
        book.add("bob", RecipientCandidate.from_dict(invite))
        book.save()

        candidate = book.resolve("bob@example.com")
    """

    def __init__(self, path: Path | str, contacts: dict[str, RecipientCandidate] | None = None) -> None:
        self.path = Path(path)
        self._contacts: dict[str, RecipientCandidate] = dict(contacts or {})

    @classmethod
    def load(cls, path: Path | str) -> ContactBook:
        """Load the book at *path*; a missing file is an empty book."""
        path = Path(path)
        if not path.exists():
            return cls(path)
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigException(f"Contacts file is not valid JSON: {exc}", path=str(path)) from exc
        if not isinstance(raw, dict):
            raise ConfigException("Contacts file must contain a JSON object", path=str(path))
        contacts = {alias: RecipientCandidate.from_dict(entry) for alias, entry in raw.items()}
        return cls(path, contacts)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {alias: c.to_dict() for alias, c in self._contacts.items()}
        with atomic_write(self.path) as out:
            out.write(json.dumps(data, indent=2).encode("utf-8"))

    def __len__(self) -> int:
        return len(self._contacts)

    def __contains__(self, alias: object) -> bool:
        return alias in self._contacts

    def items(self) -> list[tuple[str, RecipientCandidate]]:
        return sorted(self._contacts.items())

    def add(self, alias: str, candidate: RecipientCandidate, *, overwrite: bool = False) -> None:
        """Register *candidate* under *alias*.

        Raises:
            InvalidSignatureError: If the candidate's profile signature fails.
            ConflictError: If the alias exists and *overwrite* is False.
        """
        if not candidate.verify():
            raise InvalidSignatureError(
                f"Invalid profile signature for {candidate.profile.email}",
                email=candidate.profile.email,
            )
        if alias in self._contacts and not overwrite:
            raise ConflictError(f"Contact alias already exists: {alias}", existing_id=alias)
        self._contacts[alias] = candidate
        logger.info("Added contact %s (%s)", alias, candidate.profile.email)

    def remove(self, alias: str) -> RecipientCandidate:
        try:
            candidate = self._contacts.pop(alias)
        except KeyError:
            raise NotFoundError("contact", alias) from None
        logger.info("Removed contact %s", alias)
        return candidate

    def resolve(self, alias_or_email: str) -> RecipientCandidate:
        """Find a candidate by alias, falling back to an exact email match."""
        if alias_or_email in self._contacts:
            return self._contacts[alias_or_email]
        matches = [c for c in self._contacts.values() if c.profile.email == alias_or_email]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            raise ConflictError(f"Email {alias_or_email} matches several contacts; use an alias")
        raise NotFoundError("contact", alias_or_email)
