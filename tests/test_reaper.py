"""
Tests for the reaper: timeout enforcement under both policies, idempotence,
fault isolation and loop lifecycle
"""

import asyncio

import pytest

from service_registry import config
from service_registry.errors import NotFoundError, NotFoundKind
from service_registry.registry import Reaper
from service_registry.types import InstanceStatus, ReaperPolicy, ServiceIdentity

ADDRESS_A = "http://10.0.0.1:8080"
ADDRESS_B = "http://10.0.0.2:8080"
TIMEOUT = 15


@pytest.fixture
def mark_down_reaper(registry):
    return Reaper(
        registry,
        interval_seconds=5,
        timeout_seconds=TIMEOUT,
        policy=ReaperPolicy.MARK_DOWN,
        enabled=True,
    )


@pytest.fixture
def evict_reaper(registry):
    return Reaper(
        registry,
        interval_seconds=5,
        timeout_seconds=TIMEOUT,
        policy=ReaperPolicy.EVICT,
        enabled=True,
    )


class TestMarkDownPolicy:
    @pytest.mark.asyncio
    async def test_not_marked_within_timeout(
        self, registry, mark_down_reaper, search_v1, clock
    ):
        await registry.register(search_v1, ADDRESS_A)
        clock.advance(TIMEOUT)

        result = await mark_down_reaper.sweep_once()

        assert result.changed == 0
        instances = await registry.get_instances(search_v1)
        assert instances[0].status == InstanceStatus.RUNNING

    @pytest.mark.asyncio
    async def test_marked_down_after_timeout(
        self, registry, mark_down_reaper, search_v1, clock
    ):
        await registry.register(search_v1, ADDRESS_A)
        clock.advance(TIMEOUT + 0.5)

        result = await mark_down_reaper.sweep_once()

        assert [inst.address for inst in result.marked_down] == [ADDRESS_A]
        assert result.evicted == []
        snapshot = await registry.list_all()
        assert snapshot["search"]["v1"][0].status == InstanceStatus.DOWN

    @pytest.mark.asyncio
    async def test_only_stale_instances_marked(
        self, registry, mark_down_reaper, search_v1, clock
    ):
        await registry.register(search_v1, ADDRESS_A)
        clock.advance(10)
        await registry.register(search_v1, ADDRESS_B)
        clock.advance(10)

        await mark_down_reaper.sweep_once()

        snapshot = await registry.list_all()
        statuses = {inst.address: inst.status for inst in snapshot["search"]["v1"]}
        assert statuses[ADDRESS_A] == InstanceStatus.DOWN
        assert statuses[ADDRESS_B] == InstanceStatus.RUNNING

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(
        self, registry, mark_down_reaper, search_v1, clock
    ):
        await registry.register(search_v1, ADDRESS_A)
        await registry.register(ServiceIdentity("billing", "2"), ADDRESS_B)
        clock.advance(TIMEOUT + 1)

        first = await mark_down_reaper.sweep_once()
        after_first = await registry.list_all()
        second = await mark_down_reaper.sweep_once()
        after_second = await registry.list_all()

        assert len(first.marked_down) == 2
        assert second.changed == 0
        assert after_first == after_second
        assert mark_down_reaper.get_stats()["marked_down"] == 2
        assert mark_down_reaper.get_stats()["sweeps"] == 2

    @pytest.mark.asyncio
    async def test_register_sweep_revive_cycle(
        self, registry, mark_down_reaper, search_v1, clock
    ):
        await registry.register(search_v1, ADDRESS_A)
        clock.advance(TIMEOUT + 1)
        await mark_down_reaper.sweep_once()
        assert (await registry.get_instances(search_v1))[0].status == InstanceStatus.DOWN

        await registry.register(search_v1, ADDRESS_A)
        assert (
            await registry.get_instances(search_v1)
        )[0].status == InstanceStatus.RUNNING

        await mark_down_reaper.sweep_once()
        assert (
            await registry.get_instances(search_v1)
        )[0].status == InstanceStatus.RUNNING

    @pytest.mark.asyncio
    async def test_clock_going_backwards_never_marks_down(
        self, registry, mark_down_reaper, search_v1, clock
    ):
        await registry.register(search_v1, ADDRESS_A)
        clock.advance(-3600)

        result = await mark_down_reaper.sweep_once()

        assert result.changed == 0
        assert (await registry.get_instances(search_v1))[0].is_running


class TestEvictPolicy:
    @pytest.mark.asyncio
    async def test_evicts_and_prunes(self, registry, evict_reaper, search_v1, clock):
        await registry.register(search_v1, ADDRESS_A)
        clock.advance(TIMEOUT + 1)

        result = await evict_reaper.sweep_once()

        assert [inst.address for inst in result.evicted] == [ADDRESS_A]
        assert result.marked_down == []
        assert await registry.list_all() == {}
        with pytest.raises(NotFoundError) as exc_info:
            await registry.discover(search_v1)
        assert exc_info.value.kind == NotFoundKind.SERVICE_UNKNOWN

    @pytest.mark.asyncio
    async def test_evict_keeps_fresh_siblings(
        self, registry, evict_reaper, search_v1, clock
    ):
        await registry.register(search_v1, ADDRESS_A)
        clock.advance(10)
        await registry.register(search_v1, ADDRESS_B)
        clock.advance(10)

        await evict_reaper.sweep_once()

        remaining = await registry.get_instances(search_v1)
        assert [inst.address for inst in remaining] == [ADDRESS_B]

    @pytest.mark.asyncio
    async def test_register_after_eviction_is_fresh(
        self, registry, evict_reaper, search_v1, clock
    ):
        await registry.register(search_v1, ADDRESS_A)
        clock.advance(TIMEOUT + 1)
        await evict_reaper.sweep_once()

        result = await registry.register(search_v1, ADDRESS_A)
        assert result.created is True
        assert result.revived is False
        assert evict_reaper.get_stats()["evicted"] == 1


class TestFaultIsolation:
    @pytest.mark.asyncio
    async def test_bad_instance_does_not_stop_sweep(
        self, registry, mark_down_reaper, search_v1, clock
    ):
        await registry.register(search_v1, ADDRESS_A)
        await registry.register(search_v1, ADDRESS_B)
        await registry.register(ServiceIdentity("billing", "1"), ADDRESS_A)
        # Corrupt one instance so evaluating it raises
        registry._services["search"]["v1"][ADDRESS_A].last_heartbeat = None
        clock.advance(TIMEOUT + 1)

        result = await mark_down_reaper.sweep_once()

        assert result.errors == 1
        assert sorted(
            (inst.service_name, inst.address) for inst in result.marked_down
        ) == [("billing", ADDRESS_A), ("search", ADDRESS_B)]
        assert mark_down_reaper.get_stats()["instance_errors"] == 1

    @pytest.mark.asyncio
    async def test_loop_survives_failing_sweep(self, registry, clock):
        calls = []

        async def flaky_sweep(timeout_seconds, policy):
            calls.append(timeout_seconds)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return await original_sweep(timeout_seconds, policy)

        original_sweep = registry.sweep
        registry.sweep = flaky_sweep
        reaper = Reaper(
            registry, interval_seconds=0.01, timeout_seconds=TIMEOUT, enabled=True
        )

        await reaper.start()
        try:
            for _ in range(200):
                if len(calls) >= 3:
                    break
                await asyncio.sleep(0.01)
        finally:
            await reaper.stop()

        assert len(calls) >= 3
        assert reaper.get_stats()["failed_sweeps"] == 1


class TestLifecycle:
    def test_policy_defaults_to_configured_policy(self, registry):
        reaper = Reaper(registry, enabled=False)
        assert reaper.policy == ReaperPolicy(config.REAPER_POLICY)

    @pytest.mark.asyncio
    async def test_initial_state(self, mark_down_reaper):
        assert not mark_down_reaper.is_running()
        assert mark_down_reaper._reaper_task is None
        assert mark_down_reaper.get_stats()["sweeps"] == 0

    @pytest.mark.asyncio
    async def test_start_and_stop(self, mark_down_reaper):
        await mark_down_reaper.start()
        assert mark_down_reaper.is_running()
        assert mark_down_reaper._reaper_task is not None

        # Starting twice is a no-op
        task = mark_down_reaper._reaper_task
        await mark_down_reaper.start()
        assert mark_down_reaper._reaper_task is task

        await mark_down_reaper.stop()
        assert not mark_down_reaper.is_running()
        assert mark_down_reaper._reaper_task is None

    @pytest.mark.asyncio
    async def test_disabled_reaper_does_not_start(self, registry):
        reaper = Reaper(registry, enabled=False)
        await reaper.start()
        assert not reaper.is_running()
        await reaper.stop()

    @pytest.mark.asyncio
    async def test_background_loop_marks_down(self, registry, search_v1, clock):
        reaper = Reaper(
            registry, interval_seconds=0.01, timeout_seconds=TIMEOUT, enabled=True
        )
        await registry.register(search_v1, ADDRESS_A)
        clock.advance(TIMEOUT + 1)

        await reaper.start()
        try:
            for _ in range(200):
                if reaper.get_stats()["marked_down"]:
                    break
                await asyncio.sleep(0.01)
        finally:
            await reaper.stop()

        assert (await registry.get_instances(search_v1))[0].status == InstanceStatus.DOWN

    @pytest.mark.asyncio
    async def test_reset_stats(self, registry, mark_down_reaper, search_v1, clock):
        await registry.register(search_v1, ADDRESS_A)
        clock.advance(TIMEOUT + 1)
        await mark_down_reaper.sweep_once()

        mark_down_reaper.reset_stats()
        assert mark_down_reaper.get_stats() == {
            "sweeps": 0,
            "marked_down": 0,
            "evicted": 0,
            "instance_errors": 0,
            "failed_sweeps": 0,
        }
