"""Shared FastAPI dependencies."""

from fastapi import Request

from bibleeido.progress.store import ProgressStore


def get_progress_store(request: Request) -> ProgressStore:
    """Return the progress store the application was started with."""
    return request.app.state.progress_store
