"""
Release detection and notification policy.

Selects the latest release of a feed, compares it with the stored
state and applies the source's title filter. Nothing in this module
performs I/O.
"""

import logging
import signal
from collections.abc import Sequence
from contextlib import contextmanager

from release_watcher.models import (
    NotificationDecision,
    ReleaseRecord,
    ReleaseState,
    TrackedSource,
)

logger = logging.getLogger(__name__)

# Timeout for regex operations in seconds (ReDoS protection)
REGEX_TIMEOUT_SECONDS = 2


class RegexTimeoutError(Exception):
    """Raised when a regex operation times out."""

    pass


@contextmanager
def regex_timeout(seconds: int):
    """
    Context manager to limit regex execution time (ReDoS protection).

    Note: This uses SIGALRM which only works on Unix-like systems and
    in the main thread. Elsewhere, this is a no-op.

    Parameters
    ----------
    seconds : int
        Maximum time in seconds before timeout.

    Raises
    ------
    RegexTimeoutError
        If the operation exceeds the timeout.
    """

    def timeout_handler(signum, frame):
        raise RegexTimeoutError(f"Regex operation timed out after {seconds} seconds")

    try:
        old_handler = signal.signal(signal.SIGALRM, timeout_handler)
        armed = True
    except (AttributeError, ValueError):
        # No SIGALRM (Windows) or not in the main thread
        armed = False

    if not armed:
        yield
        return

    signal.alarm(seconds)
    try:
        yield
    finally:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, old_handler)


def select_latest(releases: Sequence[ReleaseRecord]) -> ReleaseRecord | None:
    """
    Select the most recently published release.

    Releases are stable-sorted by publication time, newest first.
    Missing or unparseable timestamps count as the oldest possible
    time, and equal timestamps keep feed order (first listed wins).

    Parameters
    ----------
    releases : Sequence[ReleaseRecord]
        Releases in feed order.

    Returns
    -------
    ReleaseRecord | None
        The latest release, or None for an empty feed.
    """
    if not releases:
        return None
    # sorted() stays stable with reverse=True
    return sorted(releases, key=lambda r: r.published_at, reverse=True)[0]


def should_notify(source: TrackedSource, release: ReleaseRecord) -> bool:
    """
    Check whether a new release passes the source's title filter.

    Parameters
    ----------
    source : TrackedSource
        The source the release belongs to.
    release : ReleaseRecord
        The new release.

    Returns
    -------
    bool
        True if the source has no filter or the filter matches the title.
        A match that times out counts as no match.
    """
    if source.pattern is None:
        return True

    try:
        with regex_timeout(REGEX_TIMEOUT_SECONDS):
            return source.pattern.search(release.title) is not None
    except RegexTimeoutError:
        logger.warning(
            "Pattern match timed out for '%s', treating as non-match",
            source.name,
        )
        return False


def detect(
    source: TrackedSource,
    releases: Sequence[ReleaseRecord],
    state: ReleaseState,
) -> NotificationDecision:
    """
    Decide whether a source has a new release and if it should notify.

    The state is not modified; the caller records ``decision.release``
    whenever ``decision.is_new`` is True, whatever ``should_notify`` says.

    Parameters
    ----------
    source : TrackedSource
        The source being checked.
    releases : Sequence[ReleaseRecord]
        Releases fetched for the source, in feed order.
    state : ReleaseState
        Last recorded release per source.

    Returns
    -------
    NotificationDecision
        The detection outcome.
    """
    latest = select_latest(releases)
    if latest is None:
        logger.debug("No releases found for '%s'", source.name)
        return NotificationDecision(is_new=False, should_notify=False)

    stored = state.get(source.name)
    if stored is not None and stored.id == latest.id:
        logger.debug("No new release for '%s' (latest: %s)", source.name, latest.id)
        return NotificationDecision(is_new=False, should_notify=False, release=latest)

    notify = should_notify(source, latest)
    logger.info(
        "New release for '%s': %s%s",
        source.name,
        latest.title or latest.id,
        "" if notify else " (filtered out)",
    )
    return NotificationDecision(is_new=True, should_notify=notify, release=latest)
