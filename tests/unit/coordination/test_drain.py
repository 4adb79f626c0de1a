"""Tests for the Drain-on-Stop procedure."""

from unittest.mock import MagicMock

import pytest

from tests.unit.conftest import FakePlatform, FakeSyncService
from webfarm.coordination.drain import DrainProcedure


class FakeClock:
    """Monotonic clock advanced by the fake sleep."""

    def __init__(self):
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def make_drain(platform, clock, **kwargs) -> DrainProcedure:
    return DrainProcedure(platform, sleep=clock.sleep, clock=clock, **kwargs)


@pytest.fixture
def sync_service(call_log):
    return FakeSyncService("sites", "temp", [], "Conn", lambda: True, call_log=call_log)


class TestDrain:
    def test_counts_down_to_zero(self, clock, sync_service, call_log):
        platform = FakePlatform(request_counts=[3, 2, 1, 0], call_log=call_log)

        result = make_drain(platform, clock).execute(sync_service, "WebFarm_IN_0")

        assert platform.samples == 4
        assert clock.sleeps == [1.0, 1.0, 1.0]
        assert result.samples == 4
        assert result.drained is True
        assert result.elapsed_seconds == 3.0

    def test_idle_node_returns_after_one_sample(self, clock, sync_service, call_log):
        platform = FakePlatform(request_counts=[0], call_log=call_log)

        result = make_drain(platform, clock).execute(sync_service, "WebFarm_IN_0")

        assert platform.samples == 1
        assert clock.sleeps == []
        assert result.drained is True

    def test_negative_count_counts_as_drained(self, clock, sync_service):
        platform = FakePlatform(request_counts=[-1])
        assert make_drain(platform, clock).execute(sync_service, "i").samples == 1

    def test_marks_not_synced_before_first_sample(self, clock, sync_service, call_log):
        platform = FakePlatform(request_counts=[2, 0], call_log=call_log)

        make_drain(platform, clock).execute(sync_service, "WebFarm_IN_3")

        assert call_log[0] == ("sync_status", "WebFarm_IN_3", False)
        assert [entry[0] for entry in call_log[1:]] == ["sample", "sample"]
        assert sync_service.sync_status_updates == [("WebFarm_IN_3", False)]

    def test_custom_poll_interval(self, clock, sync_service):
        platform = FakePlatform(request_counts=[5, 0])
        make_drain(platform, clock, poll_interval_seconds=0.25).execute(sync_service, "i")
        assert clock.sleeps == [0.25]

    def test_without_sync_service_only_drains(self, clock):
        platform = FakePlatform(request_counts=[1, 0])
        result = make_drain(platform, clock).execute(None, "i")
        assert result.samples == 2

    def test_sync_status_failure_propagates_before_sampling(self, clock):
        platform = FakePlatform(request_counts=[0])
        sync_service = MagicMock()
        sync_service.update_all_sites_sync_status.side_effect = ConnectionError("storage down")

        with pytest.raises(ConnectionError):
            make_drain(platform, clock).execute(sync_service, "i")
        assert platform.samples == 0


class TestDrainBudget:
    def test_unbounded_by_default(self, clock, sync_service):
        platform = FakePlatform(request_counts=[1] * 500 + [0])

        result = make_drain(platform, clock).execute(sync_service, "i")

        assert result.drained is True
        assert result.samples == 501

    def test_budget_stops_waiting(self, clock, sync_service):
        platform = FakePlatform(request_counts=[4])

        result = make_drain(platform, clock, max_drain_seconds=5).execute(sync_service, "i")

        assert result.drained is False
        assert result.samples == 6
        assert result.elapsed_seconds == 5.0
