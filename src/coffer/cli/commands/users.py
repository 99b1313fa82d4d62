"""User commands: list and change who can open an envelope.

Commands:
    coffer user list <file>               Show the recipients of a file
    coffer user add <file> <contact>      Grant a contact access
    coffer user remove <file> <user>      Revoke access (handle, email or key)

Every change reseals the file under a new content key.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from ...envelope.protocol import EnvelopeSession, mutate_recipients
from ...envelope.registry import match_recipient
from ..output import output_candidate, output_error
from ..utils import envelope_options, get_contacts, get_identity


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the user sub-command group."""
    user_parser = subparsers.add_parser("user", help="Manage who can open a file")
    user_sub = user_parser.add_subparsers(dest="user_command", required=True)

    # --- list ---
    list_p = user_sub.add_parser("list", help="List file recipients")
    list_p.add_argument("file", help="Envelope file")
    list_p.set_defaults(func=cmd_user_list)

    # --- add ---
    add_p = user_sub.add_parser("add", help="Give a contact access to a file")
    add_p.add_argument("file", help="Envelope file")
    add_p.add_argument("contact", help="Contact alias or email")
    add_p.set_defaults(func=cmd_user_add)

    # --- remove ---
    remove_p = user_sub.add_parser("remove", help="Remove a recipient from a file")
    remove_p.add_argument("file", help="Envelope file")
    remove_p.add_argument("user", help="Recipient handle, email or base64 public key")
    remove_p.set_defaults(func=cmd_user_remove)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _require_file(path: Path) -> bool:
    if not path.exists():
        output_error(f"File {path} does not exist")
        return False
    return True


def cmd_user_list(args: argparse.Namespace) -> int:
    """List the recipients of a file."""
    path = Path(args.file)
    if not _require_file(path):
        return 1
    with EnvelopeSession(path, get_identity(), **envelope_options()) as session:
        session.open()
        for entry in session.metadata.recipients:
            output_candidate(entry.profile.handle or entry.profile.email, entry.candidate)
    return 0


def cmd_user_add(args: argparse.Namespace) -> int:
    """Add a contact as a recipient."""
    path = Path(args.file)
    if not _require_file(path):
        return 1
    candidate = get_contacts().resolve(args.contact)
    opened = mutate_recipients(path, get_identity(), add=candidate, **envelope_options())
    print(f"Added {candidate.profile.display()} ({len(opened.metadata.recipients)} recipients)")
    return 0


def cmd_user_remove(args: argparse.Namespace) -> int:
    """Remove a recipient."""
    path = Path(args.file)
    if not _require_file(path):
        return 1
    identity = get_identity()
    options = envelope_options()
    with EnvelopeSession(path, identity, **options) as session:
        session.open()
        entry = match_recipient(session.metadata, args.user)

    opened = mutate_recipients(path, identity, remove=entry.public_point, **options)
    print(f"Removed {entry.profile.display()} ({len(opened.metadata.recipients)} recipients)")
    return 0
