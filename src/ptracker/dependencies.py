"""Shared FastAPI dependencies."""

from fastapi import Request

from ptracker.service.data_service import DataService


def get_data_service(request: Request) -> DataService:
    """The DataService built at startup (or injected by tests)."""
    return request.app.state.data_service
