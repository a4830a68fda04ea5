"""FastAPI backend for the UNMASK dashboard.

Provides REST endpoints for messages, agent chat, vectorization and insights.

Usage:
    # Development server
    uvicorn api.main:app --reload --port 8600

    # Or via the CLI
    unmask serve --reload
"""

from .main import app

__all__ = ["app"]
