"""
Protocol definition for notification backends.

Defines the common interface that all notifiers must implement and
the plain-text rendering shared by them.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from release_watcher.models import ReleaseRecord


@dataclass(frozen=True)
class Notification:
    """
    Rendered notification for one release.

    Attributes
    ----------
    subject : str
        Short summary line.
    body : str
        Plain-text message body.
    """

    subject: str
    body: str


def render_notification(source: str, release: ReleaseRecord) -> Notification:
    """
    Render the notification for a new release.

    Parameters
    ----------
    source : str
        Name of the source.
    release : ReleaseRecord
        The new release.

    Returns
    -------
    Notification
        Subject and body. The subject is always a single line.
    """
    subject = f"New release from {source}: {release.title}"
    return Notification(
        # Titles may span lines; headers may not
        subject=" ".join(subject.split()),
        body=(
            f"A new release has been published for {source}.\n\n"
            f"Title: {release.title}\n"
            f"Link: {release.link}\n"
            f"Published: {release.published}"
        ),
    )


@runtime_checkable
class Notifier(Protocol):
    """
    Protocol defining the interface for notification backends.

    All notifiers (email, Telegram) must implement these methods to be
    used by the release watcher.
    """

    channel: str

    async def send_release(self, source: str, release: ReleaseRecord) -> None:
        """
        Send a notification for a new release.

        Delivery is all-or-nothing: either the message was accepted by
        the backend or an error is raised.

        Parameters
        ----------
        source : str
            Name of the source.
        release : ReleaseRecord
            The new release.

        Raises
        ------
        DeliveryError
            If the notification could not be delivered.
        """
        ...

    async def close(self) -> None:
        """Close the notifier and release any resources."""
        ...
