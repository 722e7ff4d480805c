"""Shared fixtures for relgraph tests."""

import pytest

from relgraph.config import EngineConfig, SimulationConfig
from relgraph.fetcher import FetchError
from relgraph.models import Entity, Relationship


class FakeFetcher:
    """In-memory fetcher returning queued snapshots or errors."""

    def __init__(self, entities=None, relationships=None):
        self.entities = list(entities or [])
        self.relationships = list(relationships or [])
        self.error = None
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.entities), list(self.relationships)

    def fail_with(self, message="connection refused"):
        self.error = FetchError("/api/v1/things", message)


@pytest.fixture
def alice_graph_data():
    """Entities and relationships of the Alice / Sensor-1 scenario."""
    entities = [
        Entity(id=1, name="Alice", type="person"),
        Entity(id=2, name="Sensor-1", type="machine"),
    ]
    relationships = [
        Relationship(id="r1", source_id=1, target_id=2, type="owns", name="Owns"),
        Relationship(id="r2", source_id=1, target_id=99, type="relates_to", name="Ghost"),
    ]
    return entities, relationships


@pytest.fixture
def plant_data():
    """A small mixed graph with every strength class and several types."""
    entities = [
        Entity(id="p1", name="Alice", type="person", description="Operator"),
        Entity(id="p2", name="Bob", type="person"),
        Entity(id="m1", name="Press", type="machine", description="Hydraulic press"),
        Entity(id="m2", name="Robot", type="machine"),
        Entity(id="o1", name="Line A", type="object"),
    ]
    relationships = [
        Relationship(id="e1", source_id="p1", target_id="m1", type="owns", name="Alice owns press"),
        Relationship(id="e2", source_id="m1", target_id="m2", type="owns", name="Press owns robot"),
        Relationship(id="e3", source_id="m1", target_id="m2", type="depends_on", name="Press needs robot"),
        Relationship(id="e4", source_id="p1", target_id="p2", type="collaborates", name="Team"),
        Relationship(id="e5", source_id="o1", target_id="m2", type="contains", name="Line holds robot",
                     description="Cell 4", properties={"slot": 4}),
    ]
    return entities, relationships


@pytest.fixture
def fake_fetcher(plant_data):
    entities, relationships = plant_data
    return FakeFetcher(entities, relationships)


@pytest.fixture
def fast_config():
    """Engine config with a short frame interval for loop tests."""
    return EngineConfig(
        api_base_url="http://test",
        simulation=SimulationConfig(frame_interval=0.001),
    )


@pytest.fixture
def make_fetcher():
    """Factory for fetchers serving a given snapshot."""
    return FakeFetcher
