# portal/web/frontend/api/__init__.py
"""Módulo de cliente API."""

from .api_client import APIClient, get_api_client

__all__ = ["APIClient", "get_api_client"]
