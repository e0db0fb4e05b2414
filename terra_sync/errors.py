from __future__ import annotations


class TerraSyncError(Exception):
    pass


class ConfigError(TerraSyncError):
    pass


class MalformedFeedError(TerraSyncError):
    pass


class RemoteError(TerraSyncError):
    """Failure reported by the Terra site or the Google Calendar API."""


class AuthError(RemoteError):
    pass


class NetworkError(RemoteError):
    pass


class NotFoundError(RemoteError):
    pass


class ValidationError(RemoteError):
    pass


class FetchError(RemoteError):
    pass
