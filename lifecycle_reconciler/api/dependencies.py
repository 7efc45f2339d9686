"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache

from fastapi import Depends, Request

from lifecycle_reconciler.config import Settings, load_settings
from lifecycle_reconciler.services.reconciler import LifecycleReconciler, build_reconciler


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings are read once per process"""
    return load_settings()


def get_reconciler(settings: Settings = Depends(get_settings)) -> LifecycleReconciler:
    """Provide a reconciler wired to the configured collaborators"""
    return build_reconciler(settings)
