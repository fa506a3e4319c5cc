"""Stacks: local deals marketplace API."""

__version__ = "0.1.0"
