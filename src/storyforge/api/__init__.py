"""HTTP API for StoryForge (Flask blueprint-free route registration)."""

from .routes import register_routes

__all__ = ['register_routes']
