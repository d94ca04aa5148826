"""Shared pytest configuration and fixtures for the Weave test suite."""

import random
import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from weave.core.engine import Engine
from weave.core.ui.renderer import HeadlessRenderer


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


# =============================================================================
# Fakes
# =============================================================================

class RecordingTransport:
    """Transport that records every message instead of sending it."""

    def __init__(self):
        self.sent: list[tuple[str, str, object]] = []

    def send(self, device_id, verb, payload=None):
        self.sent.append((device_id, verb, payload))

    def verbs_for(self, device_id):
        return [verb for dev, verb, _ in self.sent if dev == device_id]


class FakeClock:
    """Millisecond clock the tests can move by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def renderer() -> HeadlessRenderer:
    return HeadlessRenderer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=1_000_000.0)


@pytest.fixture
def engine(renderer, transport, clock) -> Engine:
    """Engine on the built-in capability table with recording boundaries."""
    return Engine(renderer=renderer, transport=transport, rng=random.Random(7), clock=clock)


@pytest.fixture
def spec_payload() -> dict:
    """A small device spec in the deviceSpec.json layout."""
    return {
        "deviceCapabilities": {
            "nexus5": {
                "showable": {"size": "normal", "shape": "rect"},
                "touchable": {"on": ["tap", "tap:button"]},
                "shakable": {"on": ["shake"]},
            },
            "moto360": {
                "showable": {"size": "small", "shape": "round"},
                "touchable": {"on": ["tap", "swipeLeft"]},
                "rotatable": {"on": ["rotateCW", "rotateCCW"]},
            },
        },
        "devices": {
            "nexus5": {"id": "nexus5", "type": "phone", "name": "Nexus5",
                       "fullname": "Nexus 5", "joint": "Hand", "os": "Android"},
            "moto360": {"id": "moto360", "type": "watch", "name": "Moto360",
                        "fullname": "Moto 360", "joint": "Wrist", "os": "Android"},
        },
    }
