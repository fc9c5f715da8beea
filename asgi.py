"""
asgi.py -- Application assembly for the admission portal.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
