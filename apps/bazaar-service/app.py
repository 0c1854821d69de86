"""
App assembly entry point.

Re-exports the FastAPI `app` from `bazaar.api.main` so the service can be
started with ``uvicorn app:app``.
"""

from bazaar.api.main import app  # noqa: F401
