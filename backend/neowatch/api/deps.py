"""Service providers for route dependencies. Tests swap them via app.dependency_overrides."""
from neowatch.services import runtime
from neowatch.services.neo_service import NeoService
from neowatch.services.watchlist import WatchlistService


def get_neo_service() -> NeoService:
    return runtime.neo_service


def get_watchlist_service() -> WatchlistService:
    return runtime.watchlist_service
