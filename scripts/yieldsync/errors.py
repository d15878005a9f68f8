"""
Exception taxonomy for the synchronization engine.

Entity-level errors (NetworkError, ValidationError, RoutingMiss) are recovered
inside the orchestrator. EnumerationFailure is fatal to the current sweep and
EntityNotFound maps to a 404 at the HTTP layer.
"""

from typing import Optional


class SyncError(Exception):
    """Base class for engine errors."""


class NetworkError(SyncError):
    """Transport or HTTP failure reaching a source."""

    def __init__(self, message: str, source: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class ValidationError(SyncError):
    """Response body did not have the expected shape."""


class RoutingMiss(SyncError):
    """No adapter is registered for a source identifier."""

    def __init__(self, identifier: str):
        super().__init__(f"No adapter registered for source: {identifier}")
        self.identifier = identifier


class EnumerationFailure(SyncError):
    """The storage gateway could not list the entities to sweep."""


class EntityNotFound(SyncError):
    """No entity exists with the requested id."""

    def __init__(self, entity_id: str):
        super().__init__(f"Pool not found: {entity_id}")
        self.entity_id = entity_id
