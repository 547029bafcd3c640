"""
Local package for the job supervisor.

This package provides the effective configuration, the job registry and the
supervisor machinery that controls jobs on the local machine.
"""

from .config import effective_settings

__all__ = ["effective_settings"]
