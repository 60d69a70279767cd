"""Management REST API for notification endpoints and the event pipeline."""
