"""
Services package for the TV Guide service

This package contains all business logic and service layer components.
"""
from app.services.guide_query_service import get_guide_data
from app.services.listings_store import ListingsStore, get_listings_store
from app.services.scheduler_service import (
    ListingsWatcher,
    get_listings_watcher,
    reset_listings_watcher,
)
from app.services.xmltv_parser_service import parse_xmltv_file

__all__ = [
    'get_guide_data',
    'ListingsStore',
    'get_listings_store',
    'ListingsWatcher',
    'get_listings_watcher',
    'reset_listings_watcher',
    'parse_xmltv_file',
]
