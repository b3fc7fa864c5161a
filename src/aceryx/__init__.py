"""Aceryx - protocol-agnostic execution fabric for callable tools."""

__version__ = "0.1.0"
