import json
import time
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

import requests

from .config import DEFAULT_IPFS_API, PING_COUNT, PING_TIMEOUT
from .logger import get_logger

log = get_logger("PING")


@dataclass(frozen=True)
class PingResult:
    reachable: bool
    latency_ms: Optional[float] = None


UNREACHABLE = PingResult(False)


class PingDeadlineExceeded(requests.Timeout):
    """The ping stream ran past the overall timeout."""


def ping_target(peer_id, address_map=None):
    # Address hint lets the daemon dial a peer missing from its address book.
    if address_map:
        return f"{address_map.rstrip('/')}/p2p/{peer_id}"
    return peer_id


def lines_until(lines: Iterable[bytes], deadline: float) -> Iterator[bytes]:
    # Checked on every raw line, including the ones that will not decode.
    for line in lines:
        if time.monotonic() > deadline:
            raise PingDeadlineExceeded("ping stream ran past its overall deadline")
        yield line


def iter_ping_messages(lines: Iterable[bytes]) -> Iterator[dict]:
    """
    Decodes a /api/v0/ping body one line at a time. Lines that are not a JSON
    object are logged and skipped, the stream carries on.
    """
    for line in lines:
        if not line or not line.strip():
            continue
        try:
            message = json.loads(line)
        except ValueError:
            log.warning(f"Failed to parse line: {line!r}")
            continue
        if not isinstance(message, dict):
            log.warning(f"Ignoring non-object line: {line!r}")
            continue
        yield message


def is_pong(message: dict) -> bool:
    elapsed = message.get("Time")
    if isinstance(elapsed, bool) or not isinstance(elapsed, (int, float)):
        return False
    return message.get("Success") is True and elapsed > 0


class IpfsClient:
    """Thin client over the local daemon's HTTP control API."""

    def __init__(self, base_url=DEFAULT_IPFS_API, timeout=PING_TIMEOUT, count=PING_COUNT, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.count = count
        self.session = session or requests

    def ping(self, peer_id: str, address_map: Optional[str] = None) -> PingResult:
        target = ping_target(peer_id, address_map)
        log.info(f"Attempting to ping: {peer_id} (Address: {address_map or '-'})")

        deadline = time.monotonic() + self.timeout
        try:
            with self.session.post(
                f"{self.base_url}/api/v0/ping",
                params={"arg": target, "count": self.count},
                stream=True,
                timeout=self.timeout,
            ) as response:
                if not 200 <= response.status_code < 300:
                    log.error(f"Ping returned HTTP status {response.status_code}")
                    return UNREACHABLE

                for message in iter_ping_messages(lines_until(response.iter_lines(), deadline)):
                    log.debug(f"{peer_id}: {message}")

                    if is_pong(message):
                        latency_ms = message["Time"] / 1e6
                        log.success(f"{peer_id} pong in {latency_ms:.2f} ms")
                        return PingResult(True, latency_ms)

                    text = str(message.get("Text") or "")
                    if message.get("Success") is False and "failed" in text.lower():
                        log.error(f"Ping failed: {text}")
        except PingDeadlineExceeded:
            log.error(f"Ping of {peer_id} exceeded {self.timeout}s")
            return UNREACHABLE
        except requests.RequestException as e:
            log.error(f"HTTP request failed for {peer_id}: {e}")
            return UNREACHABLE

        log.error(f"No pongs received from {peer_id}")
        return UNREACHABLE

    def swarm_peers(self) -> List[str]:
        """Peer ids the daemon is currently connected to."""
        log.info("Fetching swarm peers from IPFS API.")
        try:
            response = self.session.post(f"{self.base_url}/api/v0/swarm/peers", timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            log.error(f"Failed to get swarm peers: {e}")
            return []
        if not isinstance(data, dict):
            log.error("Unexpected swarm/peers payload")
            return []

        peers =[p.get("Peer") for p in (data.get("Peers") or []) if isinstance(p, dict) and p.get("Peer")]
        log.info(f"Found {len(peers)} swarm peers.")
        return peers
