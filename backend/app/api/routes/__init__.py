"""
API route modules.

Import all route modules here for easy access.
"""

from app.api.routes import admin_content, admin_ops, chat, widget

__all__ = ["admin_content", "admin_ops", "chat", "widget"]
