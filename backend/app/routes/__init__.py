"""API routes."""

from .hire_contracts import router as hire_contracts_router
from .hire_requests import router as hire_requests_router
from .shortlists import router as shortlists_router

__all__ = [
    "shortlists_router",
    "hire_requests_router",
    "hire_contracts_router",
]
