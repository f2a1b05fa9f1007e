"""Exception types shared across the service."""


class SpotifyWSError(Exception):
    """Base class for errors raised by spotify-ws."""


class ConfigError(SpotifyWSError):
    """A required setting is missing or unparseable."""


class AuthFailure(SpotifyWSError):
    """The refresh-token exchange was rejected or could not be completed."""

    def __init__(self, message, status=None, error=None):
        super().__init__(message)
        self.status = status
        self.error = error


class TransportFailure(SpotifyWSError):
    """Sending to a single WebSocket subscriber failed."""

    def __init__(self, subscriber, cause):
        super().__init__(f"send to {subscriber} failed: {cause}")
        self.subscriber = subscriber
        self.cause = cause
