# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Identity commands: create a keypair, print an invite.

Commands:
    coffer init <email> [--handle H] [--force]   Create the local identity
    coffer invite                                Print the public invite JSON
"""

from __future__ import annotations

import argparse
import logging
import re

from ...core.config import get_config
from ...identity.keys import Profile, generate
from ...identity.store import save_identity
from ..output import output_error, output_json
from ..utils import get_identity

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s<>()\[\],;:\"]+@([A-Za-z0-9-]+\.)+[A-Za-z]{2,}$")


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the init and invite commands."""
    init_p = subparsers.add_parser("init", help="Create your keypair and signed profile")
    init_p.add_argument("email", help="Email address to bind to the key")
    init_p.add_argument("--handle", help="Optional short display name")
    init_p.add_argument("--force", "-f", action="store_true", help="Overwrite an existing identity")
    init_p.set_defaults(func=cmd_init)

    invite_p = subparsers.add_parser("invite", help="Print your invite for others to add you")
    invite_p.set_defaults(func=cmd_invite)


def cmd_init(args: argparse.Namespace) -> int:
    """Create a new identity."""
    if not _EMAIL_RE.match(args.email):
        output_error(f"Invalid email: {args.email}")
        return 1

    identity = generate(Profile(email=args.email, handle=args.handle or None))
    path = get_config().identity_file
    save_identity(path, identity, overwrite=args.force)

    print(f"Created identity for {identity.profile.display()}")
    print(f"   {identity.candidate().public_key_b64}")
    print(f"Saved to {path}")
    return 0


def cmd_invite(args: argparse.Namespace) -> int:
    """Print the invite JSON for the local identity."""
    output_json(get_identity().candidate().to_dict())
    return 0
