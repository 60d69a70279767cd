"""
Event Fetcher - queries the Cloudflare zone security events API for a time
window and normalizes the result into SecurityEvent records.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import requests

from models.event import SecurityEvent, NOTIFIABLE_ACTIONS
from services.exceptions import RemoteAPIError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.cloudflare.com/client/v4"


def format_api_time(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class EventFetcher:
    """Pulls security events for a window from the upstream API"""

    def __init__(
        self,
        api_token: str,
        zone_id: str,
        api_base: str = DEFAULT_API_BASE,
        page_size: int = 100,
        timeout: float = 10,
        session: Optional[requests.Session] = None
    ):
        self.api_token = api_token
        self.zone_id = zone_id
        self.api_base = api_base.rstrip('/')
        self.page_size = page_size
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "EventFetcher":
        return cls(
            api_token=config.get('CLOUDFLARE_API_TOKEN', ''),
            zone_id=config.get('CLOUDFLARE_ZONE_ID', ''),
            api_base=config.get('CLOUDFLARE_API_BASE', DEFAULT_API_BASE),
            page_size=config.get('EVENT_PAGE_SIZE', 100),
            timeout=config.get('REQUEST_TIMEOUT', 10),
        )

    @property
    def events_url(self) -> str:
        return f"{self.api_base}/zones/{self.zone_id}/security/events"

    def fetch(self, start: datetime, end: datetime) -> List[SecurityEvent]:
        """
        Fetch events that occurred in [start, end).
        Returns only notifiable actions, in upstream (newest first) order.
        Raises RemoteAPIError if the API cannot be queried.
        """
        params = {
            'since': format_api_time(start),
            'until': format_api_time(end),
            'limit': str(self.page_size),
            'order': 'desc'
        }
        headers = {
            'Authorization': f"Bearer {self.api_token}",
            'Content-Type': 'application/json'
        }

        try:
            response = self.session.get(
                self.events_url,
                params=params,
                headers=headers,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise RemoteAPIError(f"Security events request failed: {e}") from e

        if not response.ok:
            raise RemoteAPIError(
                f"Security events API error: {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteAPIError("Security events API returned a non-JSON body") from e

        records: List[Dict[str, Any]] = (data.get('result') if isinstance(data, dict) else None) or []
        events = [
            SecurityEvent.from_api_record(record)
            for record in records
            if record.get('action') in NOTIFIABLE_ACTIONS
        ]

        logger.debug(f"Fetched {len(records)} records, {len(events)} notifiable")
        return events
