import os
import atexit
import logging
from flask import Flask, jsonify, Response
from flask_cors import CORS

from config import Config
from api.routes import api, init_routes
from services.dedup_filter import DedupFilter
from services.endpoint_registry import EndpointRegistry
from services.event_fetcher import EventFetcher
from services.notification_pipeline import NotificationPipeline
from services.notifier import NotificationDispatcher
from services.scheduler import PollScheduler
from services.state_store import open_state

logger = logging.getLogger(__name__)

FALLBACK_TEXT = 'Security Notification API'


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level='INFO', log_file: str = None) -> None:
    """
    Configure root logging with a console handler and an optional log file.
    Safe to call more than once: the console handler is added only when the
    root logger has none, and each log file is attached once.
    """
    root = logging.getLogger()
    formatter = logging.Formatter(LOG_FORMAT)

    if not root.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)

    if log_file:
        path = os.path.abspath(log_file)
        attached = any(
            isinstance(h, logging.FileHandler) and h.baseFilename == path
            for h in root.handlers
        )
        if not attached:
            try:
                file_handler = logging.FileHandler(path)
                file_handler.setFormatter(formatter)
                root.addHandler(file_handler)
            except OSError:
                pass  # Log file optional

    root.setLevel(level)


def shutdown_app(app: Flask) -> None:
    """Stop the poll scheduler, close the state partition and drop the exit hook"""
    hook = app.extensions.pop('shutdown_hook', None)
    if hook is not None:
        atexit.unregister(hook)
        hook()


def create_app(config_class=Config) -> Flask:
    """Application factory"""
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        log_file=app.config.get('LOG_FILE')
    )

    # Enable CORS
    CORS(app, resources={
        r"/api/*": {
            "origins": os.environ.get('CORS_ORIGINS', '*').split(','),
            "methods": ["GET", "POST", "DELETE"],
            "allow_headers": ["Content-Type"]
        }
    })

    # Explicitly opened state partition shared by the registry and dedup filter
    state = open_state(app.config)

    registry = EndpointRegistry(state)
    pipeline = NotificationPipeline(
        registry=registry,
        fetcher=EventFetcher.from_config(app.config),
        dedup=DedupFilter(state, marker_ttl=app.config['PROCESSED_EVENT_TTL']),
        dispatcher=NotificationDispatcher(timeout=app.config.get('REQUEST_TIMEOUT', 10)),
        lookback=app.config['LOOKBACK_WINDOW']
    )

    init_routes(app, registry, pipeline)
    app.register_blueprint(api)

    scheduler = PollScheduler(pipeline, interval_seconds=app.config['POLL_INTERVAL_SECONDS'])
    app.extensions['state_partition'] = state
    app.extensions['poll_scheduler'] = scheduler

    if app.config.get('SCHEDULER_ENABLED') and not app.config.get('TESTING'):
        scheduler.start()

    def _shutdown():
        scheduler.stop()
        state.close()

    app.extensions['shutdown_hook'] = _shutdown
    atexit.register(_shutdown)

    # Anything outside the management API gets a plain-text banner
    @app.route('/', defaults={'path': ''}, methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE'])
    @app.route('/<path:path>', methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE'])
    def fallback(path):
        return Response(FALLBACK_TEXT, status=200, mimetype='text/plain')

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}")
        return jsonify({'error': 'Internal server error'}), 500

    logger.info("Security notifier initialized successfully")
    return app


if __name__ == '__main__':
    host = os.environ.get('NOTIFIER_HOST', '0.0.0.0')
    port = int(os.environ.get('NOTIFIER_PORT', 8787))
    debug = os.environ.get('NOTIFIER_DEBUG', 'false').lower() == 'true'

    application = create_app()
    logger.info(f"Starting security notifier on {host}:{port}")
    application.run(host=host, port=port, debug=debug, threaded=True)
