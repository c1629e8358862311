"""Dashboard-side state: the list-view cache and the draft controller."""

from .draft import Draft, DraftController, DraftState, RemovalOutcome, SaveResult
from .gateways import AssetGateway, EntryGateway
from .listing import CatalogListing

__all__ = [
    "AssetGateway",
    "CatalogListing",
    "Draft",
    "DraftController",
    "DraftState",
    "EntryGateway",
    "RemovalOutcome",
    "SaveResult",
]
