import pytest

from models.endpoint import NotificationEndpoint


class TestEndpointRegistry:
    """Tests for EndpointRegistry"""

    def test_add_and_list(self, registry, webhook_endpoint, slack_endpoint):
        registry.add(webhook_endpoint)
        registry.add(slack_endpoint)

        endpoints = {ep.id: ep for ep in registry.list()}
        assert len(endpoints) == 2
        assert endpoints[webhook_endpoint.id].url == 'https://hooks.example.com/ops'
        assert endpoints[slack_endpoint.id].type == 'slack'

    def test_list_empty(self, registry):
        assert registry.list() == []

    def test_add_same_id_overwrites(self, registry, webhook_endpoint):
        registry.add(webhook_endpoint)
        webhook_endpoint.name = 'Renamed'
        registry.add(webhook_endpoint)

        endpoints = registry.list()
        assert len(endpoints) == 1
        assert endpoints[0].name == 'Renamed'

    def test_add_accepts_malformed_registration(self, registry):
        endpoint = NotificationEndpoint(name='No URL', type='webhook')
        registry.add(endpoint)
        assert registry.get(endpoint.id).url is None

    def test_remove(self, registry, webhook_endpoint):
        registry.add(webhook_endpoint)
        registry.remove(webhook_endpoint.id)
        assert registry.list() == []

    def test_remove_nonexistent(self, registry, webhook_endpoint):
        registry.add(webhook_endpoint)
        registry.remove('does-not-exist')
        assert len(registry.list()) == 1

    def test_toggle(self, registry, webhook_endpoint):
        registry.add(webhook_endpoint)

        assert registry.toggle(webhook_endpoint.id, False) is True
        assert registry.get(webhook_endpoint.id).enabled is False

        registry.toggle(webhook_endpoint.id, True)
        assert registry.get(webhook_endpoint.id).enabled is True

    def test_toggle_nonexistent_leaves_registry_unchanged(self, registry, webhook_endpoint):
        registry.add(webhook_endpoint)
        before = [ep.to_dict() for ep in registry.list()]

        assert registry.toggle('missing-id', False) is False
        assert [ep.to_dict() for ep in registry.list()] == before

    def test_list_enabled(self, registry, webhook_endpoint, slack_endpoint):
        slack_endpoint.enabled = False
        registry.add(webhook_endpoint)
        registry.add(slack_endpoint)

        assert [ep.id for ep in registry.list_enabled()] == [webhook_endpoint.id]

    def test_list_returns_snapshots(self, registry, webhook_endpoint):
        registry.add(webhook_endpoint)
        snapshot = registry.list()[0]
        snapshot.enabled = False
        assert registry.get(webhook_endpoint.id).enabled is True

    def test_does_not_list_event_markers(self, registry, dedup, webhook_endpoint, event_factory):
        registry.add(webhook_endpoint)
        dedup.mark_processed([event_factory()])
        assert len(registry.list()) == 1


class TestNotificationEndpoint:

    def test_server_fields_generated(self):
        endpoint = NotificationEndpoint.from_dict({'name': 'x', 'type': 'email', 'email': 'a@b.c'})
        assert endpoint.id
        assert endpoint.created_at.endswith('Z')
        assert endpoint.enabled is True

    def test_to_dict_keys(self, email_endpoint):
        data = email_endpoint.to_dict()
        assert set(data) == {'id', 'name', 'type', 'url', 'email', 'enabled', 'createdAt'}
        assert NotificationEndpoint.from_dict(data) == email_endpoint

    def test_enabled_must_be_boolean(self):
        with pytest.raises(ValueError, match='enabled must be a boolean'):
            NotificationEndpoint.from_dict({'name': 'x', 'type': 'webhook', 'enabled': 'false'})
