"""
FastAPI Routes.

API 라우트: /api/generate
"""

from . import generate

__all__ = ["generate"]
