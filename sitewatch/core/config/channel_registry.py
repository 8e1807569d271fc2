from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from sitewatch.domain.models import ChannelConfig


@dataclass
class ChannelRegistry:
    """
    Registry of known channels.

    This class maintains an in-memory mapping from channel id to
    class: 'ChannelConfig'. It is populated at startup from configuration and
    then queried by the subscription layer, which binds each subscribed
    channel to its source path, and by the dashboard views (names and units).

    Notes
    -----
    - The registry performs simple replacement on load: if a configuration
      with the same channel id already exists, it is overwritten.
    - A channel id missing from the registry is "unknown": no subscription
      can be created for it.

    Attributes
    ----------
    _configs
        Internal mapping of channel id to ChannelConfig.
    """

    _configs: Dict[str, ChannelConfig] = field(default_factory=dict)

    def load(self, cfgs: Iterable[ChannelConfig]) -> None:
        """
        Load or update channel configurations.

        Parameters
        ----------
        cfgs
            Iterable of ChannelConfig objects, indexed by channel id.
        """
        for cfg in cfgs:
            self._configs[cfg.channel_id] = cfg

    def get(self, channel_id: str) -> Optional[ChannelConfig]:
        """
        Retrieve the configuration for a channel, or None if unknown.
        """
        return self._configs.get(channel_id)

    def __len__(self) -> int:
        return len(self._configs)
