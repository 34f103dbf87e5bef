"""
Shared fixtures for Release Watcher tests.

Provides common test fixtures for use across all test modules.
"""

import re
from pathlib import Path
from typing import Any

import pytest

from release_watcher.config import AppConfig, MailConfig, TelegramConfig
from release_watcher.errors import DeliveryError
from release_watcher.models import ReleaseRecord, TrackedSource


# Path to test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_config_path(fixtures_dir: Path) -> Path:
    """Return path to sample config file."""
    return fixtures_dir / "sample_config.yaml"


@pytest.fixture
def sample_atom_content(fixtures_dir: Path) -> str:
    """Return contents of the sample GitHub releases Atom feed."""
    return (fixtures_dir / "github_releases.atom").read_text()


@pytest.fixture
def sample_rss_content(fixtures_dir: Path) -> str:
    """Return contents of the sample RSS feed."""
    return (fixtures_dir / "sample_rss.xml").read_text()


@pytest.fixture
def sample_release() -> ReleaseRecord:
    """
    Create a sample release for testing.

    Returns
    -------
    ReleaseRecord
        A fully populated release record.
    """
    return ReleaseRecord(
        id="tag:github.com,2008:Repository/1/v1.2",
        title="v1.2",
        link="https://github.com/octo/widget/releases/tag/v1.2",
        published="2024-03-01T10:00:00Z",
    )


@pytest.fixture
def plain_source() -> TrackedSource:
    """Create a source without a notification filter."""
    return TrackedSource(
        name="octo/widget",
        feed_url="https://github.com/octo/widget/releases.atom",
    )


@pytest.fixture
def version_source() -> TrackedSource:
    """Create a source that only notifies for vX.Y titles."""
    return TrackedSource(
        name="octo/widget",
        feed_url="https://github.com/octo/widget/releases.atom",
        pattern=re.compile(r"^v[0-9]+\.[0-9]+$"),
    )


@pytest.fixture
def minimal_mail_config() -> MailConfig:
    """Create a minimal valid mail configuration."""
    return MailConfig.model_validate(
        {
            "host": "smtp.example.com",
            "port": 587,
            "from": "bot@example.com",
            "to": "dev@example.com",
        }
    )


@pytest.fixture
def minimal_telegram_config() -> TelegramConfig:
    """Create a minimal valid Telegram configuration."""
    return TelegramConfig(
        bot_token="1234567890:ABCdefGHIjklMNOpqrsTUVwxyz",
        chat_id="-1001234567890",
    )


@pytest.fixture
def minimal_config_dict() -> dict[str, Any]:
    """
    Create a minimal valid configuration dictionary.

    Returns
    -------
    dict
        Configuration dictionary that can be used to create AppConfig.
    """
    return {
        "repos": {"octo/widget": {}},
        "mail": {
            "host": "smtp.example.com",
            "port": 465,
            "secure": True,
            "auth": {"user": "bot", "pass": "secret"},
            "from": "bot@example.com",
            "to": "dev@example.com",
        },
    }


@pytest.fixture
def make_app_config(tmp_path: Path):
    """
    Return a factory building an AppConfig whose state file is in tmp_path.

    The factory takes the ``repos`` mapping as its only argument.
    """

    def factory(repos: dict[str, Any]) -> AppConfig:
        return AppConfig.model_validate(
            {
                "repos": repos,
                "mail": {
                    "host": "smtp.example.com",
                    "from": "bot@example.com",
                    "to": "dev@example.com",
                },
                "json_file_path": str(tmp_path / "state" / "releases.json"),
            }
        )

    return factory


class FakeFetcher:
    """
    In-memory feed fetcher.

    Returns preset releases per source name, or raises the preset
    exception for that source.
    """

    def __init__(self, feeds: dict[str, list[ReleaseRecord] | Exception]):
        self.feeds = feeds
        self.fetched: list[str] = []
        self.closed = False

    async def fetch_releases(self, source: TrackedSource) -> list[ReleaseRecord]:
        self.fetched.append(source.name)
        result = self.feeds.get(source.name, [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def close(self) -> None:
        self.closed = True


class FakeNotifier:
    """In-memory notifier collecting sent releases."""

    channel = "fake"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, ReleaseRecord]] = []
        self.closed = False

    async def send_release(self, source: str, release: ReleaseRecord) -> None:
        if self.fail:
            raise DeliveryError(self.channel, "delivery refused")
        self.sent.append((source, release))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    """Create a notifier that records every notification."""
    return FakeNotifier()
