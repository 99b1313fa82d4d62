# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Coffer - multi-recipient file encryption envelopes.

A coffer envelope is a text file holding an AES-256 encrypted body and, per
recipient, a copy of the content key wrapped with secp256k1 ECDH. Any
recipient can read the file, rewrite it or change who else can read it.
"""

__version__ = "0.3.0"
