from __future__ import annotations


class GazeError(Exception):
    pass


class ConfigError(GazeError):
    pass


class FetchError(GazeError):
    def __init__(self, message: str, url: str = "", status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class ServerError(FetchError):
    """5xx response; retried until the policy gives up."""


class ClientError(FetchError):
    """Non-2xx response the caller asked to treat as failure."""


class FeedParseError(FetchError):
    pass
