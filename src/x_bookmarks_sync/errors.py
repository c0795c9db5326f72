"""Exceptions raised while syncing bookmarks.

All errors derive from SyncError, which is a RuntimeError so the CLI can
report them the same way it reports any other runtime failure.
"""


class SyncError(RuntimeError):
    """Base class for bookmark sync failures."""


class NotAuthenticated(SyncError):
    def __init__(self, message: str = "Not authenticated. Run 'x-bookmarks-sync connect' first."):
        super().__init__(message)


class AuthError(SyncError):
    """Token exchange or refresh was rejected. The user has to reconnect."""


class RateLimited(SyncError):
    """The API quota is exhausted and no usable reset time was given."""


class RemoteError(SyncError):
    def __init__(self, status: int | None, body: str):
        self.status = status
        self.body = body
        if status is None:
            super().__init__(f"X API request failed: {body}")
        else:
            super().__init__(f"X API error ({status}): {body}")


class ItemProcessingError(SyncError):
    """A single bookmark could not be transformed or written."""

    def __init__(self, tweet_id: str, message: str):
        self.tweet_id = tweet_id
        super().__init__(message)


class IndexScanError(SyncError):
    """A note could not be read while rebuilding the sync index."""

    def __init__(self, path, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class SyncInProgress(SyncError):
    def __init__(self):
        super().__init__("A sync is already running.")
