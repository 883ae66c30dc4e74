"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from loan_ledger.infrastructure.database.store import LedgerStore


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_store(request: Request) -> LedgerStore:
    """Ledger store attached to the application by create_app"""
    return request.app.state.store
