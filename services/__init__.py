from services.dedup_filter import DedupFilter
from services.endpoint_registry import EndpointRegistry
from services.event_fetcher import EventFetcher
from services.exceptions import NotifierError, RemoteAPIError, DeliveryError
from services.notification_pipeline import NotificationPipeline
from services.notifier import NotificationDispatcher
from services.scheduler import PollScheduler
from services.state_store import StatePartition, InMemoryStore, MongoStore, open_state

__all__ = [
    'DedupFilter', 'EndpointRegistry', 'EventFetcher', 'NotifierError', 'RemoteAPIError',
    'DeliveryError', 'NotificationPipeline', 'NotificationDispatcher', 'PollScheduler',
    'StatePartition', 'InMemoryStore', 'MongoStore', 'open_state'
]
