"""
HTTP API Module.

FastAPI application exposing the platform's REST endpoints and the
AI grading trigger.
"""

from classgrade.api.app import create_app

__all__ = ["create_app"]
