import os
import sys
import pytest

# ensure workspace root is on sys.path so our application packages can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from config import Settings
from engine.correlator import CorrelationEngine
from engine.topology.graph import DependencyGraph


@pytest.fixture(autouse=True)
def clear_fallback(monkeypatch):
    """Wipe the in-memory redis fallback around each test and force every
    store helper onto it so tests never attempt a network connection.
    """
    import store.client as client

    async def no_redis():
        return None

    client.reset_fallback()
    monkeypatch.setattr(client, "get_redis", no_redis)
    monkeypatch.setattr(client, "_redis_client", None)

    yield

    client.reset_fallback()


@pytest.fixture(autouse=True)
def reset_singletons():
    from engine import registry
    from services import ingest_service

    registry.set_engine(None)
    ingest_service.set_ingest_service(None)
    yield
    registry.set_engine(None)
    ingest_service.set_ingest_service(None)


@pytest.fixture
def graph():
    return DependencyGraph.from_mapping({
        "Core-R1": ["Agg-SW1", "Agg-SW2"],
        "Agg-SW1": ["Access-SW1", "Access-SW2"],
        "Agg-SW2": ["Access-SW3"],
        "Access-SW1": ["Server-01"],
    })


@pytest.fixture
def engine(graph):
    return CorrelationEngine(Settings(), graph=graph)


def make_event(**overrides):
    """Raw ingestion payload with sensible defaults."""
    payload = {
        "timestamp": 1_760_000_000.0,
        "device": "Agg-SW1",
        "eventCode": "LINK_UTIL_HIGH",
        "severity": "major",
        "message": "Interface utilization above threshold",
        "metrics": {"utilization_percent": 95.0},
    }
    payload.update(overrides)
    return payload
