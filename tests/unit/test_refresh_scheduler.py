"""Unit tests for RefreshScheduler and jittered_interval."""

from __future__ import annotations

import asyncio

import pytest

from querycache.pipeline.refresh_scheduler import RefreshScheduler, jittered_interval


class TestJitteredInterval:
    def test_interval_within_bounds(self) -> None:
        for _ in range(200):
            assert 300.0 <= jittered_interval(300.0, 360.0) <= 360.0

    def test_degenerate_range(self) -> None:
        assert jittered_interval(5.0, 5.0) == 5.0


class TestRefreshScheduler:
    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            RefreshScheduler(0, lambda: None)

    @pytest.mark.asyncio
    async def test_ticks_repeatedly_until_cancelled(self) -> None:
        ticks: list[int] = []
        scheduler = RefreshScheduler(0.01, lambda: ticks.append(1), name="t")
        scheduler.start()
        await asyncio.sleep(0.1)
        assert scheduler.cancel() is True
        count = len(ticks)
        assert count >= 2
        await asyncio.sleep(0.05)
        assert len(ticks) == count
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self) -> None:
        scheduler = RefreshScheduler(10, lambda: None)
        assert scheduler.cancel() is False
        scheduler.start()
        assert scheduler.cancel() is True
        await asyncio.sleep(0)
        assert scheduler.cancel() is False

    @pytest.mark.asyncio
    async def test_start_twice_arms_one_timer(self) -> None:
        ticks: list[int] = []
        scheduler = RefreshScheduler(0.02, lambda: ticks.append(1))
        scheduler.start()
        scheduler.start()
        await asyncio.sleep(0.05)
        scheduler.cancel()
        assert 1 <= len(ticks) <= 3

    @pytest.mark.asyncio
    async def test_tick_exception_keeps_timer_alive(self) -> None:
        ticks: list[int] = []

        def on_tick() -> None:
            ticks.append(1)
            raise RuntimeError("tick failed")

        scheduler = RefreshScheduler(0.01, on_tick)
        scheduler.start()
        await asyncio.sleep(0.08)
        assert scheduler.running is True
        scheduler.cancel()
        assert len(ticks) >= 2
