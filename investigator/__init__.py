# investigator/__init__.py
"""
Cross-system retention investigation for deprovisioned user accounts.
"""

__version__ = "1.0.0"
