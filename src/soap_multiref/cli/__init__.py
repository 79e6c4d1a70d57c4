"""Command-line interface for flattening SOAP multiRef documents."""

from .main import main

__all__ = ["main"]
