# ============================================
# FILE: pgmigrate/cli/__init__.py
# ============================================
"""
CLI module for pgmigrate - contains command-line interface components.
"""

from pgmigrate.cli.main import main

__all__ = ["main"]
