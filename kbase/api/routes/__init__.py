"""
API route modules.

Import all route modules here for easy access.
"""

from kbase.api.routes import account, auth, content, lists, metadata, settings, tags

__all__ = ["account", "auth", "content", "lists", "metadata", "settings", "tags"]
