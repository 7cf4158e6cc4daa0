"""
Command line surface for coresched.
"""

from .app import main, main_cli, run

__all__ = ['main', 'main_cli', 'run']
