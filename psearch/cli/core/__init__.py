"""CLI core utilities package.

Usage:
    from psearch.cli.core import PSearchCommand
"""

from __future__ import annotations

from psearch.cli.core.command_base import PSearchCommand

__all__ = ["PSearchCommand"]
