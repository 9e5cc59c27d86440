# tests/fixtures/__init__.py
"""Test fixtures: snapshot factories, stage plugins and replay entrypoints."""
