from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import FakeApi, FakeClock, RecordingSink, SleepRecorder, map_payload, run_job, state_payload
from custom_components.valetudo.consumables import create_consumable_entries
from custom_components.valetudo.exceptions import ValetudoConnectionError
from custom_components.valetudo.mapper import build_clean_mode_catalog
from custom_components.valetudo.models import Consumable, DeviceRecord, RegionInfo
from custom_components.valetudo.options import BridgeOptions
from custom_components.valetudo.synchronizer import DeviceSynchronizer, SyncState

REGIONS = {
    1: RegionInfo(1, "1", "Kitchen"),
    2: RegionInfo(2, "2", "Hall"),
}


def _sync(
    api: FakeApi,
    sink: RecordingSink,
    sleep: SleepRecorder,
    clock: FakeClock,
    **options,
) -> DeviceSynchronizer:
    record = DeviceRecord(system_id="robot-1", host=api.host, name="Robo")
    return DeviceSynchronizer(record, api, sink, BridgeOptions(**options), run_job, sleep=sleep, clock=clock)


@pytest.mark.asyncio
async def test_initial_cycle_publishes_everything(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    sync = _sync(api, sink, sleep, clock)

    assert await sync.async_poll_cycle() == 4
    assert sink.writes == [
        ("robot-1", "PowerSource", "batPercentRemaining", 160),
        ("robot-1", "PowerSource", "batChargeState", 3),
        ("robot-1", "RvcOperationalState", "operationalState", 0x42),
        ("robot-1", "RvcRunMode", "currentMode", 1),
    ]
    assert sync.state is SyncState.POLLING
    assert sync.record.initial_state_pending is False
    assert sync.record.last_seen == clock.now
    # Paced writes, a pause between groups, then the settle delay
    assert sleep.delays == [0.2, 0.2, 0.2, 0.2, 0.2, 0.5]


@pytest.mark.asyncio
async def test_unchanged_state_publishes_nothing(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    sync = _sync(api, sink, sleep, clock)
    await sync.async_poll_cycle()
    sink.writes.clear()

    assert await sync.async_poll_cycle() == 0
    assert sink.writes == []


@pytest.mark.asyncio
async def test_only_changed_attributes_are_published(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    sync = _sync(api, sink, sleep, clock)
    await sync.async_poll_cycle()
    sink.writes.clear()

    api.state = state_payload(level=79)
    assert await sync.async_poll_cycle() == 1
    assert sink.writes == [("robot-1", "PowerSource", "batPercentRemaining", 158)]

    sink.writes.clear()
    api.state = state_payload(level=79, status="cleaning")
    assert await sync.async_poll_cycle() == 2
    assert sink.writes == [
        ("robot-1", "RvcOperationalState", "operationalState", 0x01),
        ("robot-1", "RvcRunMode", "currentMode", 2),
    ]


@pytest.mark.asyncio
async def test_dock_activity_keeps_robot_docked(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    api.state = state_payload(status="charging", dock="drying")
    sync = _sync(api, sink, sleep, clock)
    await sync.async_poll_cycle()

    assert ("robot-1", "RvcOperationalState", "operationalState", 0x42) in sink.writes


@pytest.mark.asyncio
async def test_unreachable_robot_degrades_and_recovers(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    sync = _sync(api, sink, sleep, clock)
    await sync.async_poll_cycle()

    api.fail.add("get_state_attributes")
    with pytest.raises(ValetudoConnectionError):
        await sync.async_poll_cycle()
    assert sync.state is SyncState.DEGRADED
    assert sync.record.online is False
    assert sync.available is False

    with pytest.raises(ValetudoConnectionError):
        await sync.async_poll_cycle()
    assert sync.state is SyncState.DEGRADED

    api.fail.clear()
    sink.writes.clear()
    assert await sync.async_poll_cycle() == 0
    assert sync.state is SyncState.POLLING
    assert sync.record.online is True


@pytest.mark.asyncio
async def test_rejected_write_is_retried_next_cycle(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    sink.reject.add(("PowerSource", "batPercentRemaining"))
    sync = _sync(api, sink, sleep, clock)

    assert await sync.async_poll_cycle() == 4
    assert sync.record.battery_percent is None

    sink.reject.clear()
    sink.writes.clear()
    assert await sync.async_poll_cycle() == 1
    assert sink.writes == [("robot-1", "PowerSource", "batPercentRemaining", 160)]
    assert sync.record.battery_percent == 160


@pytest.mark.asyncio
async def test_current_area_follows_robot_position(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    api.map = map_payload(robot=(350, 250))
    sync = _sync(api, sink, sleep, clock)
    sync.record.regions = dict(REGIONS)

    assert await sync.async_poll_cycle() == 5
    assert sink.writes[-1] == ("robot-1", "ServiceArea", "currentArea", 1)
    assert api.called("get_map") == [(60,)]
    assert sync.record.spatial_cache is not None

    # Same room, cache still valid: no map refetch and no write
    sink.writes.clear()
    assert await sync.async_poll_cycle() == 0
    assert len(api.called("get_map")) == 1
    assert len(api.called("get_position_payload")) == 2


@pytest.mark.asyncio
async def test_map_version_change_rebuilds_cache(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    api.map = map_payload(robot=(350, 250))
    sync = _sync(api, sink, sleep, clock)
    sync.record.regions = dict(REGIONS)
    await sync.async_poll_cycle()

    api.map = map_payload(version=2, robot=(650, 250))
    sink.writes.clear()
    assert await sync.async_poll_cycle() == 1
    assert sink.writes == [("robot-1", "ServiceArea", "currentArea", 2)]
    assert len(api.called("get_map")) == 2
    assert sync.record.spatial_cache.version == 2


@pytest.mark.asyncio
async def test_expired_cache_is_rebuilt(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    api.map = map_payload(robot=(350, 250))
    sync = _sync(api, sink, sleep, clock, map_cache_refresh_hours=1)
    sync.record.regions = dict(REGIONS)
    await sync.async_poll_cycle()

    clock.now += timedelta(hours=1, minutes=1)
    await sync.async_poll_cycle()
    assert len(api.called("get_map")) == 2


@pytest.mark.asyncio
async def test_position_failure_does_not_fail_the_cycle(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    api.fail.add("get_map")
    sync = _sync(api, sink, sleep, clock)
    sync.record.regions = dict(REGIONS)

    assert await sync.async_poll_cycle() == 4
    assert sync.state is SyncState.POLLING
    assert sync.record.current_area is None


@pytest.mark.asyncio
async def test_position_tracking_disabled(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    api.map = map_payload(robot=(350, 250))
    sync = _sync(api, sink, sleep, clock, position_tracking=False)
    sync.record.regions = dict(REGIONS)

    assert await sync.async_poll_cycle() == 4
    assert api.called("get_map") == []
    assert api.called("get_position_payload") == []


@pytest.mark.asyncio
async def test_robot_outside_every_region(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    api.map = map_payload(robot=(5000, 5000))
    sync = _sync(api, sink, sleep, clock)
    sync.record.regions = dict(REGIONS)

    assert await sync.async_poll_cycle() == 4
    assert sync.record.current_area is None


@pytest.mark.asyncio
async def test_clean_mode_is_tracked_from_presets(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    api.state = state_payload(presets={"operation_mode": "vacuum", "fan_speed": "low"})
    sync = _sync(api, sink, sleep, clock)
    sync.record.clean_modes = build_clean_mode_catalog(["vacuum"], ["low", "medium"], None)

    await sync.async_poll_cycle()
    assert sync.record.current_clean_mode == 68


@pytest.mark.asyncio
async def test_consumables_checked_during_cycle(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    api.consumables = [Consumable("brush", "main", 200, "minutes")]
    sync = _sync(api, sink, sleep, clock, consumables_enabled=True)
    create_consumable_entries(sync.record, api.consumables)

    assert await sync.async_poll_cycle() == 5
    assert sink.writes[-1] == ("robot-1-consumable-brush-main", "BooleanState", "stateValue", False)
    # The consumable write is paced like every other write
    assert sleep.delays == [0.2, 0.2, 0.2, 0.2, 0.2, 0.5, 0.2]

    # Within the check interval nothing is fetched again
    await sync.async_poll_cycle()
    assert len(api.called("get_consumables")) == 1


@pytest.mark.asyncio
async def test_stopped_synchronizer_does_nothing(
    api: FakeApi, sink: RecordingSink, sleep: SleepRecorder, clock: FakeClock
) -> None:
    sync = _sync(api, sink, sleep, clock)
    sync.start()
    sync.stop()

    assert await sync.async_poll_cycle() == 0
    assert api.calls == []
    assert sync.state is SyncState.STOPPED
