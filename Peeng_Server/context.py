from .config import Settings
from .ipfs_client import IpfsClient
from .state import PeerStore


class MonitorContext:
    """Everything the monitor and the HTTP handlers share, built once at startup."""

    def __init__(self, settings=None, store=None, client=None, notify=None):
        self.settings = settings or Settings()
        self.store = store or PeerStore(self.settings.db_path)
        self.client = client or IpfsClient(
            self.settings.ipfs_api,
            timeout=self.settings.ping_timeout,
            count=self.settings.ping_count,
        )
        self.notify = notify

    def record_ping(self, peer_id, reachable):
        """Stores the verdict and pushes it to live listeners. Returns the stored record or None."""
        record = self.store.upsert(peer_id, reachable)
        if record is not None and self.notify is not None:
            self.notify(record)
        return record
