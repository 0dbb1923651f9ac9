# src/rankmint/index/__init__.py
"""Order-statistics index over wealth values (AVL tree in an integer-addressed arena)."""

from __future__ import annotations

from rankmint.index.rank_tree import RankIndex

__all__ = ["RankIndex"]
