from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

from sitewatch.core.config.channel_registry import ChannelRegistry
from sitewatch.domain.models import ChannelConfig

logger = logging.getLogger(__name__)


@dataclass
class SubscriptionRegistry:
    """
    Tracks which channels are of interest and fans path updates out to them.

    Each subscribed channel is bound to the realtime-store path that feeds it;
    several channels may share one path. Updates for paths nobody subscribes
    to are dropped.

    Concurrency Model
    -----------------
    Subscriptions change from the control side (dashboard selection) while
    the tick worker resolves paths, so access is guarded by a lock.

    Parameters
    ----------
    registry
        Known channels. Subscribing to an id missing from the registry is a
        no-op.
    """

    registry: ChannelRegistry
    _by_path: Dict[str, Dict[str, ChannelConfig]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def subscribe(self, channel_id: str) -> bool:
        """
        Subscribe to a channel.

        Returns
        -------
        bool
            True if the channel is known (and now subscribed), False otherwise.
        """
        cfg = self.registry.get(channel_id)
        if cfg is None:
            logger.warning("Unknown channel; no subscription created", extra={"channel": channel_id})
            return False
        with self._lock:
            self._by_path.setdefault(cfg.path, {})[channel_id] = cfg
        return True

    def unsubscribe(self, channel_id: str) -> bool:
        """
        Terminate a channel's subscription.

        Returns
        -------
        bool
            True if the channel was subscribed.
        """
        with self._lock:
            for path, channels in list(self._by_path.items()):
                if channel_id in channels:
                    del channels[channel_id]
                    if not channels:
                        del self._by_path[path]
                    return True
        return False

    def channels_for(self, path: str) -> List[ChannelConfig]:
        with self._lock:
            return list(self._by_path.get(path, {}).values())

    def subscribed(self) -> Set[str]:
        with self._lock:
            return {cid for channels in self._by_path.values() for cid in channels}

    def reconcile(self, channel_ids: Iterable[str]) -> List[str]:
        """
        Make the subscribed set equal to ``channel_ids`` (known ids only).

        Returns
        -------
        list of str
            Channel ids that were unsubscribed.
        """
        wanted = set(channel_ids)
        dropped = sorted(self.subscribed() - wanted)
        for cid in dropped:
            self.unsubscribe(cid)
        for cid in sorted(wanted):
            self.subscribe(cid)
        return dropped
