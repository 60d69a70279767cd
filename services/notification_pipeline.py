"""
Notification Pipeline - fetch the recent event window, drop events that were
already notified, send the rest as one batch, then mark them processed.
Invoked by the poll scheduler or manually via POST /api/check-events.
"""
import logging
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Tuple

from models.event import SecurityEvent
from services.dedup_filter import DedupFilter
from services.endpoint_registry import EndpointRegistry
from services.event_fetcher import EventFetcher
from services.exceptions import RemoteAPIError
from services.notifier import NotificationDispatcher

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationPipeline:
    """Ties the registry, fetcher, dedup filter and dispatcher together"""

    def __init__(
        self,
        registry: EndpointRegistry,
        fetcher: EventFetcher,
        dedup: DedupFilter,
        dispatcher: NotificationDispatcher,
        lookback: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = _utc_now
    ):
        self.registry = registry
        self.fetcher = fetcher
        self.dedup = dedup
        self.dispatcher = dispatcher
        self.lookback = lookback
        self.clock = clock
        self._run_lock = Lock()

    def check_and_notify(self) -> Dict[str, Any]:
        """
        Run one poll cycle. Never raises; failures are logged and reported
        in the returned summary.

        Markers are written only after dispatch, so a crash mid-send leads
        to a duplicate notification on the next cycle rather than a lost one.
        """
        summary = {
            'success': True,
            'message': '',
            'fetched': 0,
            'new_events': 0,
            'notified_endpoints': 0
        }

        with self._run_lock:
            try:
                end = self.clock()
                start = end - self.lookback

                try:
                    events = self.fetcher.fetch(start, end)
                except RemoteAPIError as e:
                    logger.error(f"Error fetching security events: {e}")
                    summary.update(success=False, message=str(e))
                    return summary

                summary['fetched'] = len(events)
                new_events = self.dedup.partition(events)
                summary['new_events'] = len(new_events)

                if not new_events:
                    summary['message'] = 'No new security events'
                    return summary

                results = self.dispatcher.dispatch(self.registry.list(), new_events)
                summary['notified_endpoints'] = sum(1 for delivered in results.values() if delivered)

                self.dedup.mark_processed(new_events)
                summary['message'] = f"Notified {len(new_events)} new security events"
                logger.info(summary['message'])

            except Exception as e:
                logger.error(f"Error checking security events: {e}", exc_info=True)
                summary.update(success=False, message=str(e))

        return summary

    def send_test_notification(self, event: SecurityEvent) -> int:
        """Send one event to all enabled endpoints without touching dedup markers"""
        active = self.registry.list_enabled()
        self.dispatcher.dispatch(active, [event])
        return len(active)

    def get_processed_events(self, limit: Optional[int] = 100) -> List[Tuple[str, SecurityEvent]]:
        return self.dedup.list_processed(limit=limit)
