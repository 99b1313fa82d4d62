# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""File commands: read, edit and encrypt envelopes.

Commands:
    coffer cat <file>                         Decrypt to stdout
    coffer edit <file> [--editor E]           Decrypt, edit, reseal
    coffer enc <file> [--output OUT] [-r ALIAS...]   Encrypt a plaintext file
"""

from __future__ import annotations

import argparse
import logging
import shlex
import subprocess
import sys
from pathlib import Path

from ...core.config import get_config
from ...core.files import create_temp_beside, unlink_quietly
from ...envelope.cipher import new_content_key
from ...envelope.protocol import EnvelopeSession, encrypt_from, seal_from
from ...envelope.registry import rewrap_for
from ..output import output_error
from ..utils import envelope_options, get_contacts, get_identity

logger = logging.getLogger(__name__)


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register the cat, edit and enc commands."""
    cat_p = subparsers.add_parser("cat", help="Decrypt a file to stdout")
    cat_p.add_argument("file", help="Envelope file")
    cat_p.set_defaults(func=cmd_cat)

    edit_p = subparsers.add_parser("edit", help="Edit an encrypted file (created if missing)")
    edit_p.add_argument("file", help="Envelope file")
    edit_p.add_argument("--editor", "-e", help="Editor command (default: COFFER_EDITOR / EDITOR)")
    edit_p.set_defaults(func=cmd_edit)

    enc_p = subparsers.add_parser("enc", help="Encrypt a plaintext file")
    enc_p.add_argument("file", help="Plaintext file")
    enc_p.add_argument("--output", "-o", help="Write the envelope here instead of replacing the file")
    enc_p.add_argument(
        "--recipient",
        "-r",
        action="append",
        default=[],
        help="Contact alias or email to share with (repeatable)",
    )
    enc_p.set_defaults(func=cmd_enc)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def cmd_cat(args: argparse.Namespace) -> int:
    """Decrypt an envelope to stdout."""
    path = Path(args.file)
    if not path.exists():
        output_error(f"File {path} does not exist")
        return 1

    options = envelope_options()
    with EnvelopeSession(path, get_identity(), **options) as session:
        session.open()
        session.decrypt_to(sys.stdout.buffer)
    sys.stdout.flush()
    return 0


def cmd_edit(args: argparse.Namespace) -> int:
    """Decrypt to a private temporary file, run the editor, reseal."""
    path = Path(args.file)
    identity = get_identity()
    options = envelope_options()
    editor = args.editor or get_config().editor

    tmp_path, handle = create_temp_beside(path, suffix=".edit")
    try:
        with handle, EnvelopeSession(path, identity, **options) as session:
            session.open()
            session.decrypt_to(handle)

        command = shlex.split(editor) + [str(tmp_path)]
        logger.debug("Running editor %s", command[0])
        result = subprocess.run(command, check=False)
        if result.returncode != 0:
            output_error(f"Editor exited with status {result.returncode}; {path} left unchanged")
            return 1

        with open(tmp_path, "rb") as source:
            seal_from(path, identity, source, **options)
    finally:
        unlink_quietly(tmp_path)

    logger.info("Saved %s", path)
    return 0


def cmd_enc(args: argparse.Namespace) -> int:
    """Encrypt a plaintext file, in place unless --output is given."""
    source_path = Path(args.file)
    if not source_path.exists():
        output_error(f"File {source_path} does not exist")
        return 1
    target = Path(args.output) if args.output else source_path

    identity = get_identity()
    options = envelope_options()
    extra = []
    if args.recipient:
        book = get_contacts()
        extra = [book.resolve(name) for name in args.recipient]

    with open(source_path, "rb") as source:
        if args.output and target.exists() and not extra:
            # Existing envelope: keep its recipients
            seal_from(target, identity, source, **options)
        else:
            candidates = {identity.public_point: identity.candidate()}
            for candidate in extra:
                candidates.setdefault(candidate.public_point, candidate)
            content_key = new_content_key()
            metadata = rewrap_for(candidates.values(), content_key)
            encrypt_from(target, metadata, content_key, source, **options)

    print(f"Encrypted {source_path} -> {target}")
    return 0
