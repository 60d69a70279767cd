from flask import Blueprint, Flask, current_app, request, jsonify
from werkzeug.exceptions import BadRequest
from functools import wraps
from typing import Any, Dict
import logging

from models.endpoint import NotificationEndpoint, parse_enabled
from models.event import SecurityEvent
from services.endpoint_registry import EndpointRegistry
from services.notification_pipeline import NotificationPipeline

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'security_notifier'

# Create blueprint
api = Blueprint('api', __name__, url_prefix='/api')


def init_routes(app: Flask, registry: EndpointRegistry, pipeline: NotificationPipeline) -> None:
    """Attach the services used by the route handlers to the application"""
    app.extensions[EXTENSION_KEY] = {
        'registry': registry,
        'pipeline': pipeline
    }


def _registry() -> EndpointRegistry:
    return current_app.extensions[EXTENSION_KEY]['registry']


def _pipeline() -> NotificationPipeline:
    return current_app.extensions[EXTENSION_KEY]['pipeline']


def _json_object() -> Dict[str, Any]:
    """Parse the request body, which must be a JSON object"""
    data = request.get_json(force=True)
    if not isinstance(data, dict):
        raise ValueError('Request body must be a JSON object')
    return data


def handle_errors(f):
    """Decorator for consistent error handling"""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except BadRequest as e:
            return jsonify({'error': 'Invalid JSON body', 'message': e.description}), 400
        except ValueError as e:
            return jsonify({'error': str(e)}), 400
        except KeyError as e:
            return jsonify({'error': f'Missing required field: {e}'}), 400
        except Exception as e:
            logger.error(f"API error: {e}", exc_info=True)
            return jsonify({'error': 'Internal server error'}), 500
    return decorated


# =============================================================================
# Endpoint Registration
# =============================================================================

@api.route('/endpoints', methods=['GET'])
@handle_errors
def list_endpoints():
    """List registered notification endpoints"""
    endpoints = _registry().list()
    return jsonify({'endpoints': [endpoint.to_dict() for endpoint in endpoints]})


@api.route('/endpoints', methods=['POST'])
@handle_errors
def create_endpoint():
    """
    Register a notification endpoint.
    The server assigns id and createdAt; other fields are stored as given.
    """
    data = _json_object()
    data.pop('id', None)
    data.pop('createdAt', None)

    endpoint = NotificationEndpoint.from_dict(data)
    _registry().add(endpoint)

    return jsonify({'success': True, 'endpoint': endpoint.to_dict()})


@api.route('/endpoints/<endpoint_id>', methods=['DELETE'])
@handle_errors
def delete_endpoint(endpoint_id: str):
    """Remove a notification endpoint"""
    _registry().remove(endpoint_id)
    return jsonify({'success': True})


@api.route('/endpoints/<endpoint_id>/toggle', methods=['POST'])
@handle_errors
def toggle_endpoint(endpoint_id: str):
    """Enable or disable a notification endpoint"""
    data = _json_object()
    if 'enabled' not in data:
        return jsonify({'error': 'enabled field required'}), 400

    _registry().toggle(endpoint_id, parse_enabled(data['enabled']))
    return jsonify({'success': True})


# =============================================================================
# Pipeline
# =============================================================================

@api.route('/check-events', methods=['POST'])
@handle_errors
def check_events():
    """Manually run one poll cycle"""
    summary = _pipeline().check_and_notify()
    return jsonify({
        'success': True,
        'message': 'Security events checked',
        'summary': summary
    })


@api.route('/test-notification', methods=['POST'])
@handle_errors
def test_notification():
    """Send a single security event to every enabled endpoint"""
    event = SecurityEvent.from_dict(_json_object())
    notified = _pipeline().send_test_notification(event)
    return jsonify({'success': True, 'notifiedEndpoints': notified})


@api.route('/processed-events', methods=['GET'])
@handle_errors
def get_processed_events():
    """
    List processed-event markers.

    Query parameters:
    - limit: Maximum number of markers to return (default: 100)
    """
    limit = min(int(request.args.get('limit', 100)), 1000)
    processed = _pipeline().get_processed_events(limit=limit)

    return jsonify({
        'count': len(processed),
        'events': [{'key': key, 'event': event.to_dict()} for key, event in processed]
    })
