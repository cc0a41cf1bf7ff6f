"""
Document Gateway CLI Package.

Command-line access to store health, federated queries and large objects.
"""

from .cli import app, cli_main

__all__ = ["app", "cli_main"]
