"""
Notification Dispatcher - fans a batch of security events out to every
enabled endpoint, one best-effort send per endpoint.

Each endpoint type has a notifier callable that renders the type-specific
payload and performs the send, raising DeliveryError on failure. The
dispatcher runs the notifiers concurrently and swallows per-endpoint
failures after logging them, so one broken endpoint never affects another.
"""
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from models.endpoint import NotificationEndpoint, EndpointType
from models.event import SecurityEvent
from services.exceptions import DeliveryError

logger = logging.getLogger(__name__)

WEBHOOK_PAYLOAD_TYPE = 'batch'
SLACK_DETAIL_LIMIT = 5

Notifier = Callable[[NotificationEndpoint, Sequence[SecurityEvent]], None]


def format_event_time(timestamp: Optional[str]) -> str:
    """Render an ISO-8601 timestamp for humans; anything unparseable passes through as-is."""
    if not timestamp or not isinstance(timestamp, str):
        return str(timestamp)
    try:
        parsed = datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
    except (TypeError, ValueError):
        return timestamp
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime('%Y-%m-%d %H:%M:%S UTC')


def build_webhook_payload(events: Sequence[SecurityEvent]) -> Dict[str, Any]:
    return {
        'type': WEBHOOK_PAYLOAD_TYPE,
        'events': [event.to_dict() for event in events],
        'count': len(events),
        'timestamp': datetime.now(timezone.utc).isoformat()
    }


def build_slack_message(events: Sequence[SecurityEvent], detail_limit: int = SLACK_DETAIL_LIMIT) -> Dict[str, Any]:
    """
    Build a Block Kit message for a batch:
    header with the count, per-action summary and time range, details for
    the first detail_limit events, and a note for the rest.
    """
    title = f"🚨 {len(events)} Security Events Detected"
    action_counts = Counter(event.action for event in events)
    summary = ', '.join(f"{str(action).upper()}: {count}" for action, count in action_counts.items())
    time_range = f"{format_event_time(events[0].timestamp)} - {format_event_time(events[-1].timestamp)}"

    blocks: List[Dict[str, Any]] = [
        {
            'type': 'header',
            'text': {'type': 'plain_text', 'text': title}
        },
        {
            'type': 'section',
            'text': {
                'type': 'mrkdwn',
                'text': f"*Summary:* {summary}\n*Time Range:* {time_range}"
            }
        }
    ]

    for index, event in enumerate(events[:detail_limit], start=1):
        blocks.append({'type': 'divider'})
        blocks.append({
            'type': 'section',
            'text': {
                'type': 'mrkdwn',
                'text': f"*Event {index}:* {event.action} from {event.client_ip} ({event.country})"
            },
            'fields': [
                {'type': 'mrkdwn', 'text': f"*Host:* {event.host}"},
                {'type': 'mrkdwn', 'text': f"*URI:* {event.uri}"},
                {'type': 'mrkdwn', 'text': f"*Rule:* {event.rule_name}"},
                {'type': 'mrkdwn', 'text': f"*Time:* {format_event_time(event.timestamp)}"}
            ]
        })

    remaining = len(events) - detail_limit
    if remaining > 0:
        blocks.append({
            'type': 'context',
            'elements': [{'type': 'mrkdwn', 'text': f"... and {remaining} more events"}]
        })

    return {'text': title, 'blocks': blocks}


class _HTTPNotifier:
    """POSTs a JSON payload to the endpoint URL"""

    label = 'HTTP'

    def __init__(self, timeout: float = 10):
        self.timeout = timeout

    def build_payload(self, events: Sequence[SecurityEvent]) -> Dict[str, Any]:
        raise NotImplementedError

    def __call__(self, endpoint: NotificationEndpoint, events: Sequence[SecurityEvent]) -> None:
        if not endpoint.url:
            raise DeliveryError(f"{self.label} endpoint {endpoint.name} has no URL")

        try:
            response = requests.post(
                endpoint.url,
                json=self.build_payload(events),
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise DeliveryError(f"{self.label} request failed: {e}") from e

        if not response.ok:
            raise DeliveryError(f"{self.label} batch failed: {response.status_code}")

        logger.info(f"{self.label} notification sent to {endpoint.name} for {len(events)} events")


class WebhookNotifier(_HTTPNotifier):
    label = 'Webhook'

    def build_payload(self, events: Sequence[SecurityEvent]) -> Dict[str, Any]:
        return build_webhook_payload(events)


class SlackNotifier(_HTTPNotifier):
    label = 'Slack'

    def __init__(self, timeout: float = 10, detail_limit: int = SLACK_DETAIL_LIMIT):
        super().__init__(timeout=timeout)
        self.detail_limit = detail_limit

    def build_payload(self, events: Sequence[SecurityEvent]) -> Dict[str, Any]:
        return build_slack_message(events, detail_limit=self.detail_limit)


class EmailNotifier:
    """Placeholder: records the intended recipient, nothing is transmitted"""

    def __call__(self, endpoint: NotificationEndpoint, events: Sequence[SecurityEvent]) -> None:
        logger.info(f"Email notification to {endpoint.email} for {len(events)} events")


class NotificationDispatcher:
    """Sends one batched notification to each enabled endpoint"""

    def __init__(
        self,
        notifiers: Optional[Dict[str, Notifier]] = None,
        timeout: float = 10,
        max_workers: int = 8
    ):
        if notifiers is None:
            notifiers = {
                EndpointType.WEBHOOK.value: WebhookNotifier(timeout=timeout),
                EndpointType.SLACK.value: SlackNotifier(timeout=timeout),
                EndpointType.EMAIL.value: EmailNotifier(),
            }
        self.notifiers = notifiers
        self.max_workers = max_workers

    def _deliver(self, endpoint: NotificationEndpoint, events: Sequence[SecurityEvent]) -> bool:
        notifier = self.notifiers.get(endpoint.type) if isinstance(endpoint.type, str) else None
        if notifier is None:
            logger.warning(f"Unsupported endpoint type '{endpoint.type}' for {endpoint.name}")
            return False

        try:
            notifier(endpoint, events)
            return True
        except Exception as e:
            logger.error(f"Failed to send batch to {endpoint.type} {endpoint.name}: {e}")
            return False

    def dispatch(
        self,
        endpoints: Sequence[NotificationEndpoint],
        events: Sequence[SecurityEvent]
    ) -> Dict[str, bool]:
        """
        Send events to every enabled endpoint concurrently.
        Returns {endpoint_id: delivered}; never raises for delivery failures.
        """
        if not events:
            return {}

        active = [endpoint for endpoint in endpoints if endpoint.enabled]
        if not active:
            logger.debug("No enabled endpoints; nothing to dispatch")
            return {}

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(active))) as executor:
            futures = {
                endpoint.id: executor.submit(self._deliver, endpoint, events)
                for endpoint in active
            }
            wait(futures.values())

        results = {endpoint_id: future.result() for endpoint_id, future in futures.items()}
        logger.info(
            f"Dispatched {len(events)} events to {len(active)} endpoints "
            f"({sum(results.values())} delivered)"
        )
        return results
