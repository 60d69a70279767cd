from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from enum import Enum
import uuid


class EndpointType(str, Enum):
    WEBHOOK = "webhook"
    SLACK = "slack"
    EMAIL = "email"


def parse_enabled(value: Any) -> bool:
    """Accept only real JSON booleans; strings like "false" are rejected"""
    if not isinstance(value, bool):
        raise ValueError('enabled must be a boolean')
    return value


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass
class NotificationEndpoint:
    name: str
    type: str
    url: Optional[str] = None
    email: Optional[str] = None
    enabled: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=_utc_now_iso)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotificationEndpoint":
        """Build an endpoint from its serialized form; missing id/createdAt are generated."""
        endpoint = cls(
            name=data.get('name', ''),
            type=data.get('type', ''),
            url=data.get('url'),
            email=data.get('email'),
            enabled=parse_enabled(data.get('enabled', True)),
        )
        if data.get('id'):
            endpoint.id = data['id']
        if data.get('createdAt'):
            endpoint.created_at = data['createdAt']
        return endpoint

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'url': self.url,
            'email': self.email,
            'enabled': self.enabled,
            'createdAt': self.created_at
        }
