"""
Exception hierarchy for Release Watcher.

Fatal errors (configuration and state) abort the run with a nonzero
exit code. Source errors and delivery errors are isolated to the
source or notification they concern.
"""


class ReleaseWatcherError(Exception):
    """Base class for all Release Watcher errors."""


class ConfigError(ReleaseWatcherError):
    """Raised when the configuration file is missing or invalid."""


class StateError(ReleaseWatcherError):
    """Base class for state store failures."""


class StateCorruptError(StateError):
    """Raised when the persisted state cannot be read or decoded."""


class StateWriteError(StateError):
    """Raised when the state snapshot cannot be written."""


class SourceError(ReleaseWatcherError):
    """
    Base class for errors local to one tracked source.

    Attributes
    ----------
    source : str
        Name of the source that failed.
    """

    def __init__(self, source: str, message: str):
        super().__init__(message)
        self.source = source


class FetchError(SourceError):
    """Raised when a feed cannot be retrieved (network, timeout, HTTP status)."""


class ParseError(SourceError):
    """Raised when feed content cannot be parsed."""


class DeliveryError(ReleaseWatcherError):
    """
    Raised when a notification could not be delivered.

    A delivery failure never reverts the recorded release state.
    """

    def __init__(self, channel: str, message: str):
        super().__init__(message)
        self.channel = channel
