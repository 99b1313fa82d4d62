# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Coffer CLI - read, edit and share encrypted files."""

from .main import app, main

__all__ = ["main", "app"]
