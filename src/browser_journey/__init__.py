"""Browser navigation journeys: tracking, aggregation and graph queries."""

from browser_journey.core.query.queries import JourneyFilters, JourneyQueries
from browser_journey.core.storage.repository import VisitRepository
from browser_journey.core.storage.sqlite_store import SqliteStore
from browser_journey.core.tracking.ingestor import EventIngestor
from browser_journey.protocols import StoreProtocol, TabLookupProtocol
from browser_journey.writer import JsonFileStore

__version__ = "0.1.0"

__all__ = [
    "EventIngestor",
    "JourneyFilters",
    "JourneyQueries",
    "JsonFileStore",
    "SqliteStore",
    "StoreProtocol",
    "TabLookupProtocol",
    "VisitRepository",
]
