"""
Health proxy API package.

Public exports:
- create_app: FastAPI factory
- app: default global FastAPI instance (for `uvicorn arrival.api:app`)
"""

from __future__ import annotations

from arrival.api.app import app, create_app

__all__ = ["app", "create_app"]
