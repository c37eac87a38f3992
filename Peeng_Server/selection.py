# Which known peers the monitor re-checks on each pass.
from dataclasses import dataclass
from datetime import timedelta

from .state import utc_now


@dataclass(frozen=True)
class Tier:
    name: str
    window: float  # seconds since the last check
    batch_size: int
    inactive_only: bool = False


def tiers_from_settings(settings):
    """Inactive tier first, then stale tier; the monitor walks them in this order."""
    return (
        Tier("inactive", settings.inactive_window, settings.inactive_batch, inactive_only=True),
        Tier("stale", settings.stale_window, settings.stale_batch),
    )


def select_due(store, tier, now=None):
    """
    Peer ids of tier that are due for a probe, oldest check first.
    Read-only; storage errors propagate to the caller.
    """
    cutoff = (now or utc_now()) - timedelta(seconds=tier.window)
    return store.checked_before(cutoff, tier.batch_size, inactive_only=tier.inactive_only)
