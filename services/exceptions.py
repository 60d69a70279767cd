from typing import Optional


class NotifierError(Exception):
    """Base class for security notifier errors"""


class RemoteAPIError(NotifierError):
    """The upstream security events API could not be queried"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DeliveryError(NotifierError):
    """A notification endpoint rejected or never received a send"""


class StateNotOpenError(NotifierError):
    """A state partition was used before open() or after close()"""
