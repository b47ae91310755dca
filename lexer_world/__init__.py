"""Lexer's World API: event pins with viewer-aware location privacy."""

__version__ = "0.1.0"
