"""
Commit-driven CHANGES.md maintenance for GitHub Actions.
"""

__version__ = "1.0.0"
