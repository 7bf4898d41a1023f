"""Status-bucket registry: per-ticket lookup of bucket configuration."""

import logging
from typing import Iterable, Optional, Tuple

from ..models.status import StatusBucketConfig

logger = logging.getLogger(__name__)

# Used for tickets whose prefix matches no active configuration. Every set is
# empty, so such tickets get zero durations and never a closure timestamp.
UNCONFIGURED_DEFAULT = StatusBucketConfig(name='')


class StatusBucketRegistry:
    """Immutable snapshot of the active bucket configurations for one sync run."""

    def __init__(self, configs: Iterable[StatusBucketConfig]):
        active = [c for c in configs if c.is_active and c.name]
        # Longest prefix first; equal lengths ordered by name.
        self._configs: Tuple[StatusBucketConfig, ...] = tuple(
            sorted(active, key=lambda c: (-len(c.name), c.name))
        )

    @classmethod
    def load(cls, configuration_store) -> 'StatusBucketRegistry':
        """Read all active configurations once from the configuration store."""
        registry = cls(configuration_store.load_active())
        logger.info("Loaded %d active status bucket configuration(s)", len(registry))
        return registry

    def __len__(self) -> int:
        return len(self._configs)

    @property
    def configs(self) -> Tuple[StatusBucketConfig, ...]:
        return self._configs

    def config_for(self, ticket_id: str) -> Optional[StatusBucketConfig]:
        """Find the configuration whose name prefixes the ticket id.

        When several names prefix the id, the longest wins.

        Args:
            ticket_id: Ticket key (e.g., PROJ-123)

        Returns:
            Matching configuration or None
        """
        for config in self._configs:
            if ticket_id.startswith(config.name):
                return config
        return None

    def resolve(self, ticket_id: str) -> StatusBucketConfig:
        """Like config_for, but falls back to UNCONFIGURED_DEFAULT instead of None."""
        config = self.config_for(ticket_id)
        if config is None:
            logger.warning("No configuration found for ticket %s, using default empty mappings", ticket_id)
            return UNCONFIGURED_DEFAULT
        logger.debug("Found configuration for ticket %s: %s", ticket_id, config.name)
        return config
