"""
Pytest configuration and shared fixtures for security notifier tests.
"""

import pytest
import os
from datetime import datetime, timezone
from unittest.mock import Mock

# Set testing environment
os.environ['TESTING'] = 'true'


def make_event(event_id='ray-1', action='block', timestamp='2024-05-01T12:00:00Z', **overrides):
    """Build a SecurityEvent with sensible defaults"""
    from models.event import SecurityEvent

    fields = {
        'id': event_id,
        'timestamp': timestamp,
        'action': action,
        'client_ip': '203.0.113.10',
        'country': 'US',
        'method': 'GET',
        'host': 'example.com',
        'uri': '/wp-login.php',
        'user_agent': 'curl/8.0',
        'rule_id': 'rule-100',
        'rule_name': 'WAF: Suspicious login'
    }
    fields.update(overrides)
    return SecurityEvent(**fields)


def make_api_record(ray_id='ray-1', action='block', **overrides):
    """Build a raw upstream security event record"""
    record = {
        'ray_id': ray_id,
        'occurred_at': '2024-05-01T12:00:00Z',
        'action': action,
        'client_ip': '198.51.100.7',
        'country': 'DE',
        'method': 'POST',
        'host': 'shop.example.com',
        'uri': '/checkout',
        'user_agent': 'Mozilla/5.0',
        'rule_id': 'rule-200',
        'rule_message': 'SQL injection attempt'
    }
    record.update(overrides)
    return record


def mock_response(status_code=200, json_data=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = json_data
    return response


@pytest.fixture
def state():
    """An opened in-memory state partition"""
    from services.state_store import StatePartition, InMemoryStore

    partition = StatePartition('test', InMemoryStore())
    partition.open()
    yield partition
    partition.close()


@pytest.fixture
def registry(state):
    from services.endpoint_registry import EndpointRegistry
    return EndpointRegistry(state)


@pytest.fixture
def dedup(state):
    from services.dedup_filter import DedupFilter
    return DedupFilter(state)


@pytest.fixture
def webhook_endpoint():
    from models.endpoint import NotificationEndpoint
    return NotificationEndpoint(name='Ops Webhook', type='webhook', url='https://hooks.example.com/ops')


@pytest.fixture
def slack_endpoint():
    from models.endpoint import NotificationEndpoint
    return NotificationEndpoint(name='SecOps Slack', type='slack', url='https://hooks.slack.com/services/T/B/X')


@pytest.fixture
def email_endpoint():
    from models.endpoint import NotificationEndpoint
    return NotificationEndpoint(name='On-call Email', type='email', email='oncall@example.com')


@pytest.fixture
def sample_events():
    """Three events in upstream (newest first) order"""
    return [
        make_event('ray-3', 'block', '2024-05-01T12:04:00Z'),
        make_event('ray-2', 'challenge', '2024-05-01T12:02:00Z'),
        make_event('ray-1', 'block', '2024-05-01T12:00:00Z'),
    ]


@pytest.fixture
def fixed_clock():
    now = datetime(2024, 5, 1, 12, 5, 0, tzinfo=timezone.utc)
    return lambda: now


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def api_record_factory():
    return make_api_record


@pytest.fixture
def response_factory():
    return mock_response


@pytest.fixture
def test_config():
    from config import Config

    class TestConfig(Config):
        TESTING = True
        SCHEDULER_ENABLED = False
        STORAGE_BACKEND = 'memory'
        STATE_PARTITION = 'api-test'
        CLOUDFLARE_API_TOKEN = 'test-token'
        CLOUDFLARE_ZONE_ID = 'zone-123'
        LOG_FILE = None

    return TestConfig


# Pytest configuration hooks

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
