"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from lendtrack.api.routes import (
    persons, groups, entries, installments, allocations, payments
)

api_router = APIRouter()

# Include all route modules
api_router.include_router(persons.router)
api_router.include_router(groups.router)
api_router.include_router(entries.router)
api_router.include_router(installments.router)
api_router.include_router(allocations.router)
api_router.include_router(payments.router)
