"""Contact commands: the local address book of other people's invites.

Commands:
    coffer contact list                           Show contacts
    coffer contact add <alias> [invite] [--force] Add an invite (file or stdin)
    coffer contact remove <alias>                 Forget a contact
"""

from __future__ import annotations

import argparse
import sys

from ..output import output_candidate
from ..utils import get_contacts, read_invite


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the contact sub-command group."""
    contact_parser = subparsers.add_parser("contact", help="Manage contacts")
    contact_sub = contact_parser.add_subparsers(dest="contact_command", required=True)

    # --- list ---
    list_p = contact_sub.add_parser("list", help="Show contacts")
    list_p.set_defaults(func=cmd_contact_list)

    # --- add ---
    add_p = contact_sub.add_parser("add", help="Add a contact from an invite")
    add_p.add_argument("alias", help="Local name for the contact")
    add_p.add_argument("invite", nargs="?", help="Invite JSON file (default: stdin)")
    add_p.add_argument("--force", "-f", action="store_true", help="Overwrite an existing alias")
    add_p.set_defaults(func=cmd_contact_add)

    # --- remove ---
    remove_p = contact_sub.add_parser("remove", help="Remove a contact")
    remove_p.add_argument("alias", help="Contact alias")
    remove_p.set_defaults(func=cmd_contact_remove)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def cmd_contact_list(args: argparse.Namespace) -> int:
    """List contacts."""
    book = get_contacts()
    if not len(book):
        print("No contacts.")
        return 0
    for alias, candidate in book.items():
        output_candidate(alias, candidate)
    return 0


def cmd_contact_add(args: argparse.Namespace) -> int:
    """Verify an invite and store it under an alias."""
    if args.invite:
        with open(args.invite, encoding="utf-8") as f:
            candidate = read_invite(f)
    else:
        candidate = read_invite(sys.stdin)

    book = get_contacts()
    book.add(args.alias, candidate, overwrite=args.force)
    book.save()
    print(f"Added {args.alias}: {candidate.profile.display()}")
    return 0


def cmd_contact_remove(args: argparse.Namespace) -> int:
    """Remove a contact."""
    book = get_contacts()
    book.remove(args.alias)
    book.save()
    print(f"Removed {args.alias}")
    return 0
