# src/rankmint/issuance/__init__.py
"""Issuance state machine, fee ledger, allowlist registry and trait resolution.

NOTE: Keep this package import-safe (no eager imports); rankmint.index depends
on rankmint.issuance.errors.
"""

from __future__ import annotations

__all__ = [
    "allowlist",
    "collaborators",
    "constants",
    "controller",
    "errors",
    "ledger",
    "settings",
    "trait",
]
