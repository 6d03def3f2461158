"""Matching, registry and contract persistence logic (no web framework imports)."""
