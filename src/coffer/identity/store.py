"""Local identity file.

JSON document holding the private scalar next to the signed profile::

    {"user": "...", "email": "...", "sig": "<b64>", "key": "<b64 scalar>"}

Written atomically with mode 0600. Loading re-checks the profile signature,
so a hand-edited profile is rejected rather than silently re-used.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from ..core.exceptions import ConfigException, FormatError, InvalidSignatureError
from ..core.files import atomic_write
from .keys import Identity, Profile, b64, b64decode

logger = logging.getLogger(__name__)


def identity_to_dict(identity: Identity) -> dict[str, str]:
    data = {
        "email": identity.profile.email,
        "sig": b64(identity.signature),
        "key": b64(identity.private_scalar),
    }
    if identity.profile.handle:
        data["user"] = identity.profile.handle
    return data


def identity_from_dict(data: dict) -> Identity:
    if not isinstance(data, dict):
        raise FormatError("Identity file must contain a JSON object")
    for name in ("email", "sig", "key"):
        if not isinstance(data.get(name), str):
            raise FormatError(f"Identity field '{name}' missing or not a string")
    profile = Profile(email=data["email"], handle=data.get("user") or None)
    return Identity.from_private_scalar(
        b64decode(data["key"], "identity key"),
        profile,
        b64decode(data["sig"], "identity signature"),
    )


def load_identity(path: Path | str) -> Identity:
    """Load and sanity-check the identity stored at *path*.

    Raises:
        ConfigException: If the file does not exist or is not valid JSON.
        FormatError: If fields are missing or malformed.
        InvalidSignatureError: If the profile signature does not verify.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigException("Identity not initialised; run 'coffer init' first", path=str(path))
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigException(f"Identity file is not valid JSON: {exc}", path=str(path)) from exc

    identity = identity_from_dict(data)
    if not identity.verify():
        raise InvalidSignatureError(
            f"Profile signature of local identity {identity.email} does not verify",
            email=identity.email,
        )
    logger.debug("Loaded identity %s from %s", identity.email, path)
    return identity


def save_identity(path: Path | str, identity: Identity, *, overwrite: bool = False) -> None:
    """Persist *identity* to *path* (0600, atomic replace).

    Raises:
        ConfigException: If the file exists and *overwrite* is False.
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise ConfigException("Identity already exists; use --force to overwrite", path=str(path))
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(identity_to_dict(identity), indent=2).encode("utf-8")
    with atomic_write(path, suffix=".keytmp") as out:
        out.write(payload)
    if os.name == "posix":
        os.chmod(path, 0o600)
    logger.info("Saved identity %s to %s", identity.email, path)
