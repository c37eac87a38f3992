# config.py
import os
from dataclasses import dataclass

VERSION = "1.1.3"

DEFAULT_IPFS_API = "http://127.0.0.1:5001"
DEFAULT_DB_PATH = "./peers.db"
DEFAULT_LOG_FILE = "log_peeng.txt"

LISTEN_HOST = "0.0.0.0"
LISTEN_PORT = 8080

PING_COUNT = 4
PING_TIMEOUT = 30  # seconds, whole request
PING_PACING = 1  # seconds between two probes of the same batch

INACTIVE_WINDOW = 5 * 60
INACTIVE_BATCH = 10
STALE_WINDOW = 30 * 60
STALE_BATCH = 5

ERROR_BACKOFF = 30
IDLE_INTERVAL = 5


def _env_flag(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    ipfs_api: str = DEFAULT_IPFS_API
    db_path: str = DEFAULT_DB_PATH
    log_file: str = DEFAULT_LOG_FILE
    log_level: str = "INFO"
    host: str = LISTEN_HOST
    port: int = LISTEN_PORT

    ping_count: int = PING_COUNT
    ping_timeout: float = PING_TIMEOUT
    ping_pacing: float = PING_PACING

    inactive_window: float = INACTIVE_WINDOW
    inactive_batch: int = INACTIVE_BATCH
    stale_window: float = STALE_WINDOW
    stale_batch: int = STALE_BATCH

    error_backoff: float = ERROR_BACKOFF
    idle_interval: float = IDLE_INTERVAL
    seed_from_swarm: bool = False

    def __post_init__(self):
        self.ipfs_api = self.ipfs_api.rstrip("/")

    @classmethod
    def from_env(cls):
        """
        Reads the deployment overrides. Everything not listed here is a fixed
        constant of the service.
        """
        return cls(
            ipfs_api=os.getenv("IPFS_API") or DEFAULT_IPFS_API,
            db_path=os.getenv("PEENG_DB") or DEFAULT_DB_PATH,
            log_file=os.getenv("PEENG_LOG_FILE", DEFAULT_LOG_FILE),
            log_level=os.getenv("PEENG_LOG_LEVEL", "INFO").upper(),
            seed_from_swarm=_env_flag("SEED_FROM_SWARM"),
        )
