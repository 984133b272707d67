"""Stale git branch cleanup tool.

Features:
- List local branches with their cleanup classification
- Protect branches by name, glob, regex or an ad-hoc pattern
- Filter by merge status and age
- Dry-run by default, guarded deletion with --clean
"""

__version__ = "0.3.0"
