"""
Practice Module

Exercise catalogue, attempt grading and the command-line console.

This module provides:
- YAML-backed lessons and practice exercises
- Trimmed expected-output comparison for attempts
- Progress recording on correct attempts
- YAML configuration and the `practice` CLI
"""

__version__ = "0.1.0"
