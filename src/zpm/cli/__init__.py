"""Command line front end of zpm."""

from .main import main

__all__ = ["main"]
