"""Command-line interface for Eye Portfolio."""

from .main import app, main

__all__ = ["app", "main"]
