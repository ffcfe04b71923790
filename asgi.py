"""
asgi.py -- ASGI entry point for the donation tracker.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
