"""
Peeng_Server/monitor.py
Background worker that keeps re-checking known peers.
"""

import sqlite3
import time

from .logger import get_logger
from .selection import select_due, tiers_from_settings

log = get_logger("WORKER")


class PeerMonitor:

    def __init__(self, ctx, sleep=time.sleep):
        self.ctx = ctx
        self.sleep = sleep
        self.tiers = tiers_from_settings(ctx.settings)

    def seed_from_swarm(self):
        # Peers connected in the swarm right now are live by definition.
        peers = self.ctx.client.swarm_peers()
        for peer_id in peers:
            self.ctx.record_ping(peer_id, True)
        return len(peers)

    def probe_batch(self, peer_ids):
        for i, peer_id in enumerate(peer_ids):
            if i:
                self.sleep(self.ctx.settings.ping_pacing)
            result = self.ctx.client.ping(peer_id)
            log.info(f"Pinged {peer_id}, result: {result.reachable}")
            self.ctx.record_ping(peer_id, result.reachable)
        return len(peer_ids)

    def run_iteration(self):
        """
        One pass: inactive tier first, then stale tier. Selection errors
        propagate; ping and upsert failures end up as state or log lines.
        """
        if self.ctx.settings.seed_from_swarm:
            self.seed_from_swarm()
        else:
            log.debug("Skipping swarm seeding")

        probed = 0
        for tier in self.tiers:
            peer_ids = select_due(self.ctx.store, tier)
            if peer_ids:
                log.info(f"{tier.name} tier: {len(peer_ids)} peer(s) to ping")
            probed += self.probe_batch(peer_ids)
        return probed

    def run_forever(self):
        log.info("Peer monitor started")
        while True:
            try:
                probed = self.run_iteration()
            except sqlite3.Error as e:
                log.error(f"Failed to query peers for ping: {e}")
                self.sleep(self.ctx.settings.error_backoff)
                continue

            if not probed:
                self.sleep(self.ctx.settings.idle_interval)
