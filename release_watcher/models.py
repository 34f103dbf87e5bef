"""
Core data types for Release Watcher.

Defines normalized release records, tracked sources and the
per-run notification decision.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

# Sort key for releases whose timestamp is missing or unparseable
OLDEST_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)

RECORD_FIELDS = ("id", "title", "link", "published")


def parse_published(value: str) -> datetime | None:
    """
    Parse a feed timestamp into an aware datetime.

    Accepts ISO 8601 / RFC 3339 (as used by Atom) and RFC 822
    (as used by RSS 2.0). Naive values are assumed to be UTC.

    Parameters
    ----------
    value : str
        Raw timestamp string from the feed.

    Returns
    -------
    datetime | None
        The parsed timestamp, or None if the value is empty or not
        in a recognized format.
    """
    value = (value or "").strip()
    if not value:
        return None

    parsed: datetime | None = None
    iso_value = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        parsed = datetime.fromisoformat(iso_value)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ReleaseRecord:
    """
    Normalized release entry from a source feed.

    Attributes
    ----------
    id : str
        Stable unique identifier. The only field used for equality
        between the fetched and the stored release.
    title : str
        Release title.
    link : str
        Release URL.
    published : str
        Publication timestamp as found in the feed.
    """

    id: str = ""
    title: str = ""
    link: str = ""
    published: str = ""

    @property
    def published_at(self) -> datetime:
        """Parsed publication time, or the oldest possible instant."""
        return parse_published(self.published) or OLDEST_TIMESTAMP

    @classmethod
    def from_feedparser(cls, entry: Any) -> "ReleaseRecord":
        """
        Create a ReleaseRecord from a feedparser entry.

        Missing fields are replaced by empty strings.

        Parameters
        ----------
        entry : Any
            A feedparser entry object.

        Returns
        -------
        ReleaseRecord
            Normalized record.
        """
        return cls(
            id=entry.get("id") or entry.get("guid") or entry.get("link") or "",
            title=entry.get("title") or "",
            link=entry.get("link") or "",
            published=entry.get("published") or entry.get("updated") or "",
        )

    @classmethod
    def from_dict(cls, data: Any) -> "ReleaseRecord":
        """
        Create a ReleaseRecord from its persisted form.

        Raises
        ------
        ValueError
            If the data is not a mapping of the four string fields.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        for name in RECORD_FIELDS:
            if not isinstance(data.get(name), str):
                raise ValueError(f"field '{name}' is missing or not a string")
        return cls(**{name: data[name] for name in RECORD_FIELDS})

    def to_dict(self) -> dict[str, str]:
        """Return the persisted form of the record."""
        return {name: getattr(self, name) for name in RECORD_FIELDS}


# Source name -> last recorded release
ReleaseState = dict[str, ReleaseRecord]


@dataclass(frozen=True)
class TrackedSource:
    """
    A release feed being watched.

    Attributes
    ----------
    name : str
        Opaque source key, e.g. "owner/repo".
    feed_url : str
        URL of the release feed.
    pattern : re.Pattern | None
        Compiled title filter. None means every new release notifies.
    """

    name: str
    feed_url: str
    pattern: re.Pattern | None = None


@dataclass(frozen=True)
class NotificationDecision:
    """
    Outcome of detection for one source during one run.

    Attributes
    ----------
    is_new : bool
        True if the latest release differs from the stored one.
    should_notify : bool
        True if the new release passes the source's filter.
    release : ReleaseRecord | None
        The latest release, or None if the feed was empty.
    """

    is_new: bool
    should_notify: bool
    release: ReleaseRecord | None = None
