import os
from datetime import timedelta


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


class Config:
    TESTING = _env_flag('TESTING')

    # Upstream security events API
    CLOUDFLARE_API_TOKEN = os.environ.get('CLOUDFLARE_API_TOKEN', '')
    CLOUDFLARE_ZONE_ID = os.environ.get('CLOUDFLARE_ZONE_ID', '')
    CLOUDFLARE_API_BASE = os.environ.get('CLOUDFLARE_API_BASE', 'https://api.cloudflare.com/client/v4')
    EVENT_PAGE_SIZE = 100
    REQUEST_TIMEOUT = float(os.environ.get('REQUEST_TIMEOUT', 10))

    # Polling
    LOOKBACK_WINDOW = timedelta(minutes=int(os.environ.get('LOOKBACK_MINUTES', 5)))
    POLL_INTERVAL_SECONDS = int(os.environ.get('POLL_INTERVAL_SECONDS', 300))
    SCHEDULER_ENABLED = _env_flag('SCHEDULER_ENABLED', 'true') and not TESTING

    # Dedup markers
    PROCESSED_EVENT_TTL = timedelta(hours=24)

    # State storage
    STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND', 'memory')   # memory, mongodb
    MONGODB_URI = os.environ.get('MONGODB_URI', '')
    MONGODB_DATABASE = os.environ.get('MONGODB_DATABASE', 'security_notifier')
    MONGODB_COLLECTION = os.environ.get('MONGODB_COLLECTION', 'notification_state')
    STATE_PARTITION = os.environ.get('STATE_PARTITION', 'default')

    # Logging
    LOG_FILE = os.environ.get('LOG_FILE', 'notifier.log')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
