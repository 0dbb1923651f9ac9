# src/rankmint/api/__init__.py
"""HTTP surface for issuance, royalty claims and administrator settings."""
