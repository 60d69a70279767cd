from models.endpoint import NotificationEndpoint, EndpointType
from models.event import SecurityEvent, NOTIFIABLE_ACTIONS, UNKNOWN_RULE

__all__ = ['NotificationEndpoint', 'EndpointType', 'SecurityEvent', 'NOTIFIABLE_ACTIONS', 'UNKNOWN_RULE']
