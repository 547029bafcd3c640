"""
This module initializes the console package, exposing command execution
and help output.
"""

from .process import execute_command
from .handler import print_help

__all__ = ["execute_command", "print_help"]
