"""
Service layer exports.
"""
from .supabase_service import supabase_service
from .cache_service import get_cache_service, init_cache_service
from .route_catalog import route_catalog
from .trip_tracker import trip_tracker

__all__ = [
    "supabase_service",
    "get_cache_service",
    "init_cache_service",
    "route_catalog",
    "trip_tracker",
]
