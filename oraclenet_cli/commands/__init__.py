"""
CLI command modules.
"""

from oraclenet_cli.commands import merkle

__all__ = ["merkle"]
