from dataclasses import dataclass
from typing import Dict, Any

UNKNOWN_RULE = "Unknown"

# Upstream actions that warrant a notification; everything else is dropped
NOTIFIABLE_ACTIONS = frozenset({'block', 'challenge', 'jschallenge'})


@dataclass(frozen=True)
class SecurityEvent:
    id: str
    timestamp: str
    action: str
    client_ip: str = ""
    country: str = ""
    method: str = ""
    host: str = ""
    uri: str = ""
    user_agent: str = ""
    rule_id: str = ""
    rule_name: str = UNKNOWN_RULE

    @classmethod
    def from_api_record(cls, record: Dict[str, Any]) -> "SecurityEvent":
        """Map a raw upstream security event record."""
        return cls(
            id=record.get('ray_id'),
            timestamp=record.get('occurred_at'),
            action=record.get('action'),
            client_ip=record.get('client_ip'),
            country=record.get('country'),
            method=record.get('method'),
            host=record.get('host'),
            uri=record.get('uri'),
            user_agent=record.get('user_agent'),
            rule_id=record.get('rule_id'),
            rule_name=record.get('rule_message') or UNKNOWN_RULE
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecurityEvent":
        return cls(
            id=data['id'],
            timestamp=data.get('timestamp'),
            action=data.get('action'),
            client_ip=data.get('clientIP'),
            country=data.get('country'),
            method=data.get('method'),
            host=data.get('host'),
            uri=data.get('uri'),
            user_agent=data.get('userAgent'),
            rule_id=data.get('ruleId'),
            rule_name=data.get('ruleName') or UNKNOWN_RULE
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'action': self.action,
            'clientIP': self.client_ip,
            'country': self.country,
            'method': self.method,
            'host': self.host,
            'uri': self.uri,
            'userAgent': self.user_agent,
            'ruleId': self.rule_id,
            'ruleName': self.rule_name
        }
