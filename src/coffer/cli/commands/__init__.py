"""CLI command modules for Coffer.

Each module exposes a ``register(subparsers)`` function that wires up
its argparse sub-commands and sets ``parser.set_defaults(func=handler)``.
"""

from . import contacts, files, identity, users
from .contacts import cmd_contact_add, cmd_contact_list, cmd_contact_remove
from .files import cmd_cat, cmd_edit, cmd_enc
from .identity import cmd_init, cmd_invite
from .users import cmd_user_add, cmd_user_list, cmd_user_remove

# All command modules with register() functions, in registration order.
COMMAND_MODULES = [
    identity,
    files,
    users,
    contacts,
]

__all__ = [
    "COMMAND_MODULES",
    "cmd_cat",
    "cmd_contact_add",
    "cmd_contact_list",
    "cmd_contact_remove",
    "cmd_edit",
    "cmd_enc",
    "cmd_init",
    "cmd_invite",
    "cmd_user_add",
    "cmd_user_list",
    "cmd_user_remove",
]
