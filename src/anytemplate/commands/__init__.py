"""CLI commands"""

from .backends import backends_command
from .render import render_command

__all__ = ["backends_command", "render_command"]
