"""Exception types for the detection trigger service."""


class TriggerError(Exception):
    """Base class for all service errors."""


class ConfigurationError(TriggerError):
    """Raised when a settings or trigger definition is missing or invalid.

    This is the only error class allowed to prevent startup.
    """


class DetectionServiceError(TriggerError):
    """Raised when the object detection service can't be reached or fails."""

    def __init__(self, uri: str, error: str = ""):
        self.uri = uri
        self.error = error
        message = f"Failed to call detection service at {uri}"
        if error:
            message = f"{message}: {error}"
        super().__init__(message)


class NotificationError(TriggerError):
    """Raised by provider clients when a send fails."""

    def __init__(self, provider: str, target: str, error: str = ""):
        self.provider = provider
        self.target = target
        self.error = error
        message = f"{provider} send to {target} failed"
        if error:
            message = f"{message}: {error}"
        super().__init__(message)
