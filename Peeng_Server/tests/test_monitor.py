import sqlite3
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, Mock

import pytest

from Peeng_Server.context import MonitorContext
from Peeng_Server.ipfs_client import PingResult
from Peeng_Server.monitor import PeerMonitor


class StopLoop(Exception):
    pass


def ago(minutes):
    return datetime.now(timezone.utc) - timedelta(minutes=minutes)


def test_iteration_probes_inactive_tier_then_stale_tier(ctx, store, stub_client):
    store.upsert("Stale1", True, ago(50))
    store.upsert("Down2", False, ago(8))
    store.upsert("Down1", False, ago(20))
    store.upsert("Stale2", True, ago(40))
    store.upsert("Fresh", False, ago(1))
    sleep = Mock()

    probed = PeerMonitor(ctx, sleep=sleep).run_iteration()

    # Down1 is rechecked by the inactive tier, so the stale tier no longer sees it.
    assert [c[0] for c in stub_client.calls] == ["Down1", "Down2", "Stale1", "Stale2"]
    assert probed == 4
    assert store.get("Fresh").last_time_check < ago(0.5)
    assert all(p.active is False for p in store.list_peers())


def test_pacing_between_probes_of_a_batch(ctx, store):
    for i in range(3):
        store.upsert(f"Down{i}", False, ago(10 + i))
    sleep = Mock()

    PeerMonitor(ctx, sleep=sleep).run_iteration()

    assert sleep.call_count == 2
    sleep.assert_called_with(ctx.settings.ping_pacing)


def test_results_are_written_back(ctx, store, stub_client):
    store.upsert("QmBack", False, ago(10))
    stub_client.result = PingResult(True, 3.0)

    PeerMonitor(ctx, sleep=Mock()).run_iteration()

    record = store.get("QmBack")
    assert record.active is True
    assert record.last_time_check > ago(1)


def test_selection_error_backs_off_and_retries(settings):
    store = MagicMock()
    store.checked_before.side_effect = sqlite3.OperationalError("database is locked")
    ctx = MonitorContext(settings, store=store, client=MagicMock())
    sleep = Mock(side_effect=[None, StopLoop()])

    with pytest.raises(StopLoop):
        PeerMonitor(ctx, sleep=sleep).run_forever()

    assert store.checked_before.call_count == 2
    assert [c.args[0] for c in sleep.call_args_list] == [settings.error_backoff, settings.error_backoff]
    ctx.client.ping.assert_not_called()


def test_idle_iteration_sleeps(ctx):
    sleep = Mock(side_effect=StopLoop())

    with pytest.raises(StopLoop):
        PeerMonitor(ctx, sleep=sleep).run_forever()

    sleep.assert_called_once_with(ctx.settings.idle_interval)


def test_upsert_failure_does_not_stop_the_batch(settings, stub_client):
    store = MagicMock()
    store.checked_before.side_effect = [["QmA", "QmB"], []]
    store.upsert.return_value = None
    ctx = MonitorContext(settings, store=store, client=stub_client)

    assert PeerMonitor(ctx, sleep=Mock()).run_iteration() == 2
    assert [c.args[0] for c in store.upsert.call_args_list] == ["QmA", "QmB"]


def test_swarm_seeding(settings, store):
    settings.seed_from_swarm = True
    client = MagicMock()
    client.swarm_peers.return_value = ["QmSwarm1", "QmSwarm2"]
    ctx = MonitorContext(settings, store=store, client=client)

    PeerMonitor(ctx, sleep=Mock()).run_iteration()

    assert {p.peer_id: p.active for p in store.list_peers()} == {"QmSwarm1": True, "QmSwarm2": True}
    client.ping.assert_not_called()


def test_swarm_seeding_off_by_default(ctx, stub_client):
    stub_client.swarm = ["QmSwarm1"]
    PeerMonitor(ctx, sleep=Mock()).run_iteration()
    assert ctx.store.count() == 0
