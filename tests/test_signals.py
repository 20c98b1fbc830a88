import asyncio
import random
import threading

import pytest

from bdsupdater.updater.backup import BackupGate
from bdsupdater.updater.idle import IdleTracker
from bdsupdater.utils.signals import ResetEvent


def test_tracker_starts_idle():
    tracker = IdleTracker()
    assert tracker.is_idle
    assert tracker.player_count == 0


@pytest.mark.parametrize('seed', range(5))
def test_idle_iff_net_count_not_positive(seed):
    rng = random.Random(seed)
    tracker = IdleTracker()
    count = 0
    for _ in range(200):
        if rng.random() < 0.55:
            tracker.on_player_connected()
            count += 1
        else:
            tracker.on_player_disconnected()
            count -= 1
        assert tracker.is_idle == (count <= 0)
        assert tracker.player_count == count


def test_process_exit_forces_idle():
    tracker = IdleTracker()
    for _ in range(3):
        tracker.on_player_connected()
    assert not tracker.is_idle

    tracker.on_process_exited()

    assert tracker.is_idle
    assert tracker.player_count == 0


def test_concurrent_notifications_keep_count_consistent():
    tracker = IdleTracker()

    def churn():
        for _ in range(1000):
            tracker.on_player_connected()
            tracker.on_player_disconnected()

    threads = [threading.Thread(target=churn) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert tracker.player_count == 0
    assert tracker.is_idle


def test_wait_idle_blocks_until_last_player_leaves():
    async def scenario():
        tracker = IdleTracker()
        tracker.on_player_connected()
        tracker.on_player_connected()
        waiter = asyncio.ensure_future(tracker.wait_idle())

        tracker.on_player_disconnected()
        await asyncio.sleep(0.01)
        assert not waiter.done()

        tracker.on_player_disconnected()
        await asyncio.wait_for(waiter, 1)

    asyncio.run(scenario())


def test_backup_gate_blocks_while_backup_runs():
    async def scenario():
        gate = BackupGate()
        gate.on_backup_begin()
        waiter = asyncio.ensure_future(gate.wait_open())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        gate.on_backup_end()
        await asyncio.wait_for(waiter, 1)

    asyncio.run(scenario())


def test_backup_gate_observes_current_state():
    async def scenario():
        gate = BackupGate()
        gate.on_backup_begin()
        gate.on_backup_end()
        # A backup that already finished does not hold the waiter.
        await asyncio.wait_for(gate.wait_open(), 0.1)

    asyncio.run(scenario())


def test_reset_event_set_from_another_thread():
    async def scenario():
        event = ResetEvent()
        waiter = asyncio.ensure_future(event.wait())
        await asyncio.sleep(0.01)

        thread = threading.Thread(target=event.set)
        thread.start()
        await asyncio.wait_for(waiter, 1)
        thread.join()
        assert event.is_set()

    asyncio.run(scenario())
