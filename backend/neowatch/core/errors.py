"""
Error taxonomy shared by the cache, the NeoWs client and the alert pipeline.

Only upstream errors are allowed to reach request handlers. Cache errors are
absorbed where they happen and parse errors never leave the client.
"""


class NeoWatchError(Exception):
    """Base class for every error raised by neowatch."""


class UpstreamUnavailable(NeoWatchError):
    """NeoWs could not be reached, timed out, or answered with a non-2xx status."""


class UpstreamRateLimited(NeoWatchError):
    """NeoWs answered 429 or reported an exhausted API key quota."""


class NeoNotFound(NeoWatchError):
    """NeoWs has no object with the requested id."""


class CacheUnavailable(NeoWatchError):
    """The database failed during a cache read or write."""


class MalformedRecord(NeoWatchError):
    """A raw NeoWs record is structurally unusable (not a mapping, no id, ...)."""


class InvalidAlertKind(NeoWatchError):
    """An alert rule was created with a kind outside AlertKind."""


class Unauthorized(NeoWatchError):
    """The caller does not own the rule or notification, or it does not exist."""


class DuplicateNotification(NeoWatchError):
    """A notification already exists for (user, alert, object, date)."""


class AlreadyWatched(NeoWatchError):
    """The object is already on the user's watchlist."""


class NotWatched(NeoWatchError):
    """The object is not on the user's watchlist."""
