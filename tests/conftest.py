"""Shared helpers for velocity tracker tests."""
import pytest

from velocity_tracker.tracker import VelocityTracker
from velocity_tracker.tracking.strategy import Strategy

# Large base time in nanoseconds, like a monotonic clock after days of uptime.
BASE_TIME = 1_700_000_000 * 1_000_000_000
MS = 1_000_000

CONCRETE_STRATEGIES = [s for s in Strategy if s is not Strategy.DEFAULT]
BUFFERED_STRATEGIES = [s for s in CONCRETE_STRATEGIES if s not in (Strategy.INT1, Strategy.INT2)]
LSQ_STRATEGIES = [
    Strategy.LSQ1,
    Strategy.LSQ2,
    Strategy.LSQ3,
    Strategy.WLSQ2_DELTA,
    Strategy.WLSQ2_CENTRAL,
    Strategy.WLSQ2_RECENT,
]


def at(ms: float) -> int:
    """Absolute event time for an offset in milliseconds."""
    return BASE_TIME + int(round(ms * MS))


def feed(tracker, pointer_id, samples):
    """Add ``(t_ms, x, y)`` samples for a single pointer."""
    for t_ms, x, y in samples:
        tracker.add_movement(at(t_ms), [pointer_id], [(x, y)])


@pytest.fixture(autouse=True)
def _no_strategy_override(monkeypatch):
    monkeypatch.delenv("VELOCITY_TRACKER_STRATEGY", raising=False)
    monkeypatch.delenv("VELOCITY_TRACKER_SETTINGS", raising=False)


@pytest.fixture(params=CONCRETE_STRATEGIES, ids=lambda s: s.name.lower())
def tracker(request):
    return VelocityTracker(request.param)
