"""
Store Module

Progress persistence for practice attempts.

This module provides:
- SQLite-backed storage for lesson completion
- Attempt history per user and exercise
- Practice time bookkeeping
"""

__version__ = "0.1.0"
