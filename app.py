"""
App assembly entry point.

Re-exports the FastAPI `app` from `tradingroom.api.main` for `uvicorn app:app`.
"""

from tradingroom.api.main import app  # noqa: F401
