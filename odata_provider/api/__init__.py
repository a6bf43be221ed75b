"""
odata_provider.api - Optional REST API Gateway
==============================================

This module provides an optional FastAPI-based REST gateway exposing
the generic data-provider contract over HTTP.

Usage
-----
>>> from odata_provider.api import create_app
>>> app = create_app()
>>> # Run with: uvicorn odata_provider.api:app

Or run directly:
>>> python -m odata_provider.api

"""

from pathlib import Path

from dotenv import load_dotenv

# Load .env before the gateway reads its environment
env_path = Path.cwd() / ".env"
if not env_path.exists():
    env_path = Path(__file__).resolve().parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

from odata_provider.api.gateway import create_app, ODataGateway  # noqa: E402

# Create default app instance for uvicorn
app = create_app()

__all__ = [
    "create_app",
    "ODataGateway",
    "app",
]
