"""
API routes initialization.

This module aggregates all API routers and provides a single router
to include in the main application.
"""

from fastapi import APIRouter

from app.api.routes import admin_content, admin_ops, chat, widget

# Create main API router
api_router = APIRouter()

# Public widget routes
api_router.include_router(chat.router)
api_router.include_router(widget.router)

# Admin routes (bearer token with admin role)
api_router.include_router(admin_content.router)
api_router.include_router(admin_ops.router)
