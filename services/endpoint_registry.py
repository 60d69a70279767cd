import logging
from typing import List, Optional

from models.endpoint import NotificationEndpoint
from services.state_store import StatePartition

logger = logging.getLogger(__name__)

ENDPOINT_PREFIX = 'endpoint:'


class EndpointRegistry:
    """Stores notification endpoint registrations in a state partition"""

    def __init__(self, state: StatePartition):
        self.state = state

    @staticmethod
    def _key(endpoint_id: str) -> str:
        return f"{ENDPOINT_PREFIX}{endpoint_id}"

    def add(self, endpoint: NotificationEndpoint) -> str:
        """Store an endpoint, replacing any registration with the same ID"""
        self.state.put(self._key(endpoint.id), endpoint.to_dict())
        logger.info(f"Registered endpoint: {endpoint.name} ({endpoint.type}, ID: {endpoint.id})")
        return endpoint.id

    def remove(self, endpoint_id: str) -> None:
        """Remove an endpoint; unknown IDs are ignored"""
        self.state.delete(self._key(endpoint_id))
        logger.info(f"Removed endpoint {endpoint_id}")

    def get(self, endpoint_id: str) -> Optional[NotificationEndpoint]:
        data = self.state.get(self._key(endpoint_id))
        return NotificationEndpoint.from_dict(data) if data else None

    def list(self) -> List[NotificationEndpoint]:
        """Get all registered endpoints"""
        entries = self.state.list(prefix=ENDPOINT_PREFIX)
        return [NotificationEndpoint.from_dict(data) for data in entries.values()]

    def list_enabled(self) -> List[NotificationEndpoint]:
        return [endpoint for endpoint in self.list() if endpoint.enabled]

    def toggle(self, endpoint_id: str, enabled: bool) -> bool:
        """
        Enable or disable an endpoint.
        Returns False (and changes nothing) if the endpoint does not exist.
        """
        key = self._key(endpoint_id)
        with self.state.exclusive():
            data = self.state.get(key)
            if not data:
                logger.debug(f"Toggle ignored for unknown endpoint {endpoint_id}")
                return False
            data['enabled'] = bool(enabled)
            self.state.put(key, data)

        logger.info(f"Endpoint {endpoint_id} {'enabled' if enabled else 'disabled'}")
        return True
