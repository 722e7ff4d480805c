"""HTTP access to the things and relationships API.

Fetches both collections concurrently and unwraps the response envelopes:

- ``{"success": true, "data": [...]}``
- ``{"success": true, "data": {"data": [...], "count": N}}``
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Union

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from relgraph.models import Entity, Relationship

if TYPE_CHECKING:
    from relgraph.config import EngineConfig

logger = logging.getLogger(__name__)

THINGS_PATH = "/api/v1/things"
RELATIONSHIPS_PATH = "/api/v1/relationships"


class FetchError(Exception):
    """A collection could not be fetched or its envelope was not a success."""

    def __init__(self, endpoint: str, message: str) -> None:
        super().__init__(f"{endpoint}: {message}")
        self.endpoint = endpoint
        self.message = message


class ThingRecord(BaseModel):
    """Schema for entity records returned by the things endpoint."""

    model_config = ConfigDict(extra="allow")

    id: Union[str, int]
    name: str | None = None
    type: str | None = None
    description: str | None = None
    attributes: dict[str, Any] | None = None
    features: dict[str, Any] | None = None

    def to_entity(self) -> Entity:
        return Entity(
            id=self.id,
            name=self.name or "",
            type=self.type or "",
            description=self.description or "",
            attributes=self.attributes or {},
            features=self.features or {},
            extra=dict(self.model_extra or {}),
        )


class RelationshipRecord(BaseModel):
    """Schema for relationship records returned by the relationships endpoint."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Union[str, int]
    source_id: Union[str, int] = Field(alias="sourceId")
    target_id: Union[str, int] = Field(alias="targetId")
    type: str | None = None
    name: str | None = None
    description: str | None = None
    properties: dict[str, Any] | None = None

    def to_relationship(self) -> Relationship:
        return Relationship(
            id=self.id,
            source_id=self.source_id,
            target_id=self.target_id,
            type=self.type or "",
            name=self.name or "",
            description=self.description or "",
            properties=self.properties or {},
            extra=dict(self.model_extra or {}),
        )


def unwrap_envelope(payload: Any, endpoint: str = "") -> list[dict[str, Any]]:
    """Extract the record list from a response envelope.

    Args:
        payload: Decoded JSON body
        endpoint: Endpoint name for error messages

    Returns:
        List of raw records (empty when the payload carries no data)

    Raises:
        FetchError: If the envelope is not a success or has an unknown shape
    """
    if not isinstance(payload, dict):
        raise FetchError(endpoint, "response is not a JSON object")
    if not payload.get("success", False):
        raise FetchError(endpoint, payload.get("error") or payload.get("message") or "request failed")

    data = payload.get("data")
    # Page envelope: {"data": [...], "count": N}
    if isinstance(data, dict):
        data = data.get("data")
    if data is None:
        return []
    if not isinstance(data, list):
        raise FetchError(endpoint, "unexpected data shape")
    return data


def parse_things(records: list[dict[str, Any]]) -> list[Entity]:
    """Convert raw thing records to entities, skipping malformed records.

    Args:
        records: Raw records from the things endpoint

    Returns:
        Parsed entities in input order
    """
    entities = []
    for record in records:
        try:
            entities.append(ThingRecord.model_validate(record).to_entity())
        except ValidationError as e:
            logger.warning("Skipping malformed thing record %r: %s", record, e)
    return entities


def parse_relationships(records: list[dict[str, Any]]) -> list[Relationship]:
    """Convert raw relationship records, skipping malformed records.

    Args:
        records: Raw records from the relationships endpoint

    Returns:
        Parsed relationships in input order
    """
    relationships = []
    for record in records:
        try:
            relationships.append(RelationshipRecord.model_validate(record).to_relationship())
        except ValidationError as e:
            logger.warning("Skipping malformed relationship record %r: %s", record, e)
    return relationships


class GraphFetcher:
    """Fetches entities and relationships from the HTTP API.

    Each request is a blocking ``requests`` call run in a worker thread, so
    the two collections are fetched concurrently without blocking the loop.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            base_url: Base URL of the API (without the /api/v1 prefix)
            timeout: Timeout in seconds for each request
            session: Optional session to reuse (a new one is created if None)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: EngineConfig) -> GraphFetcher:
        return cls(base_url=config.api_base_url, timeout=config.request_timeout)

    def _get(self, path: str) -> list[dict[str, Any]]:
        """GET an endpoint and unwrap its envelope.

        Args:
            path: Endpoint path

        Returns:
            Raw records

        Raises:
            FetchError: On network errors, timeouts, HTTP errors or bad bodies
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, headers={"Accept": "application/json"}, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.Timeout as e:
            raise FetchError(path, f"timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise FetchError(path, str(e)) from e
        except ValueError as e:
            raise FetchError(path, f"invalid JSON: {e}") from e
        return unwrap_envelope(payload, path)

    def fetch_things(self) -> list[Entity]:
        return parse_things(self._get(THINGS_PATH))

    def fetch_relationships(self) -> list[Relationship]:
        return parse_relationships(self._get(RELATIONSHIPS_PATH))

    async def fetch(self) -> tuple[list[Entity], list[Relationship]]:
        """Fetch both collections concurrently and wait for both.

        Returns:
            Tuple of (entities, relationships)

        Raises:
            FetchError: If either request fails
        """
        entities, relationships = await asyncio.gather(
            asyncio.to_thread(self.fetch_things),
            asyncio.to_thread(self.fetch_relationships),
        )
        logger.debug("Fetched %d things and %d relationships", len(entities), len(relationships))
        return entities, relationships

    def close(self) -> None:
        self.session.close()

    def __repr__(self) -> str:
        return f"GraphFetcher(base_url={self.base_url}, timeout={self.timeout})"
