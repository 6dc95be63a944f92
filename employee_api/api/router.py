"""
API Router Aggregator
=============================================================================
Collects every APIRouter into one, which main.py mounts on the app:
  - health.py    -> /health, /ready, /metrics
  - employees.py -> /api/v1/employees/*
=============================================================================
"""

from fastapi import APIRouter

from employee_api.api.employees import router as employees_router
from employee_api.api.health import router as health_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(employees_router)
