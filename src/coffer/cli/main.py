#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors
"""
Coffer CLI - multi-recipient encrypted files.

Commands:
  coffer init <email>              Create your keypair
  coffer invite                    Print your invite
  coffer cat <file>                Decrypt a file to stdout
  coffer edit <file>               Edit (or create) an encrypted file
  coffer enc <file>                Encrypt a plaintext file
  coffer user list|add|remove      Manage who can open a file
  coffer contact list|add|remove   Manage your address book
"""

from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError

from .. import __version__
from ..core.config import clear_config_cache, get_config, set_config
from ..core.exceptions import AccessDeniedError, CofferException, InvalidSignatureError
from ..core.logging import configure_logging, correlation_context
from .commands import COMMAND_MODULES
from .output import output_error

logger = logging.getLogger(__name__)


def _product_tag(value: str) -> str:
    value = value.strip()
    if not value:
        raise argparse.ArgumentTypeError("product tag must not be empty")
    return value


def app() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="coffer",
        description="Encrypted files shared between people by public key",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  coffer init alice@example.com --handle alice   Create your identity
  coffer invite > alice.json                     Share your public invite
  coffer contact add bob bob.json                Trust Bob's invite
  coffer edit secrets.txt                        Create / edit a file
  coffer user add secrets.txt bob                Let Bob read it
  coffer cat secrets.txt                         Print the plaintext
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--identity", help="Identity file (default: COFFER_IDENTITY or ~/.coffer/identity.json)")
    parser.add_argument("--contacts", help="Contacts file (default: COFFER_CONTACTS or ~/.coffer/contacts.json)")
    parser.add_argument("--product", type=_product_tag, help="Envelope product tag (default: COFFER)")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="More logging (-v info, -vv debug)")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for module in COMMAND_MODULES:
        module.register(subparsers)

    return parser


def _apply_overrides(args: argparse.Namespace) -> None:
    """Load settings for this invocation and fold in the global flags."""
    clear_config_cache()
    config = get_config()
    updates: dict[str, str] = {}
    if args.identity:
        updates["identity_path"] = args.identity
    if args.contacts:
        updates["contacts_path"] = args.contacts
    if args.product:
        updates["product"] = args.product
    if updates:
        set_config(config.model_copy(update=updates))


def _log_level(verbose: int) -> str | None:
    if verbose >= 2:
        return "DEBUG"
    if verbose == 1:
        return "INFO"
    return None


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = app()
    args = parser.parse_args(argv)

    try:
        _apply_overrides(args)
    except ValidationError as e:
        output_error(f"Invalid configuration: {e}")
        return 1

    configure_logging(level=_log_level(args.verbose))

    with correlation_context():
        try:
            return args.func(args)
        except InvalidSignatureError as e:
            logger.debug("Signature check failed", exc_info=True)
            output_error(f"Signature check failed, file may have been tampered with: {e.message}")
            return 1
        except AccessDeniedError as e:
            output_error(f"Access denied: {e.message}")
            return 1
        except CofferException as e:
            logger.debug("Command failed", exc_info=True)
            output_error(e.message)
            return 1
        except OSError as e:
            logger.debug("Command failed", exc_info=True)
            output_error(str(e))
            return 1


if __name__ == "__main__":
    sys.exit(main())
