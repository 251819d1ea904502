"""Shared FastAPI dependencies."""

from fastapi import Request

from viewerledger.database import Store


def get_store(request: Request) -> Store:
    """The Store the application was created with."""
    return request.app.state.store
