# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Output helpers for CLI commands.

Results go to stdout, diagnostics to stderr, so ``coffer cat`` output can be
piped safely.
"""

from __future__ import annotations

import json
import sys
from typing import Any

from ..identity.keys import RecipientCandidate


def output_json(data: dict[str, Any] | list[Any]) -> None:
    """Pretty-print JSON to stdout."""
    print(json.dumps(data, indent=2))


def output_candidate(label: str, candidate: RecipientCandidate) -> None:
    """Print one recipient or contact as a three-line block."""
    print(label)
    print(f"   {candidate.profile.display()}")
    print(f"   {candidate.public_key_b64}")


def output_error(message: str) -> None:
    """Print error message to stderr."""
    print(f"Error: {message}", file=sys.stderr)
