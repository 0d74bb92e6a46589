"""
api/dependencies.py -- Per-request service construction.

Services are thin wrappers around the stores and codec that the lifespan put
on app.state. Building them per request keeps route handlers free of any
module-level state.
"""

from fastapi import Request

from auth.directory import UserDirectory
from ledger.service import SaleLedger


def get_directory(request: Request) -> UserDirectory:
    state = request.app.state
    return UserDirectory(state.user_store, state.codec, frontend_url=state.frontend_url)


def get_ledger(request: Request) -> SaleLedger:
    state = request.app.state
    return SaleLedger(state.sale_store, state.user_store)
