"""
Main entry point for Release Watcher.

Runs one detection pass over all tracked sources, sends notifications
for new releases and saves the release state.
"""

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

import coloredlogs

from release_watcher.config import AppConfig, load_config
from release_watcher.detection import detect
from release_watcher.errors import (
    ConfigError,
    DeliveryError,
    SourceError,
    StateCorruptError,
    StateWriteError,
)
from release_watcher.feeds import FeedFetcher
from release_watcher.mailer import EmailNotifier
from release_watcher.models import ReleaseState, TrackedSource
from release_watcher.notifier import Notifier, render_notification
from release_watcher.storage import JsonStateStore

logger = logging.getLogger(__name__)


def redact_proxy_url(proxy_url: str) -> str:
    """
    Redact credentials from a proxy URL for safe logging.

    Parameters
    ----------
    proxy_url : str
        The proxy URL potentially containing credentials.

    Returns
    -------
    str
        The proxy URL with password redacted.
    """
    try:
        parsed = urlparse(proxy_url)
        if parsed.password:
            netloc = parsed.hostname or ""
            if parsed.port:
                netloc = f"{netloc}:{parsed.port}"
            if parsed.username:
                netloc = f"{parsed.username}:****@{netloc}"
            return f"{parsed.scheme}://{netloc}{parsed.path}"
        return proxy_url
    except ValueError:
        return "<proxy url>"


@dataclass
class RunReport:
    """
    Summary of one run.

    Attributes
    ----------
    sources_checked : int
        Sources whose feed was fetched and evaluated.
    new_releases : int
        Sources with a release different from the stored one.
    notifications_sent : int
        Successful deliveries, counted per notifier.
    notifications_skipped : int
        New releases filtered out by their source's pattern.
    notification_failures : int
        Failed deliveries, counted per notifier.
    source_errors : int
        Sources skipped because of an error.
    started_at : datetime
        When the run started (UTC).
    finished_at : datetime | None
        When the run finished, None while running.
    """

    sources_checked: int = 0
    new_releases: int = 0
    notifications_sent: int = 0
    notifications_skipped: int = 0
    notification_failures: int = 0
    source_errors: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None


def build_notifiers(config: AppConfig) -> list[Notifier]:
    """
    Create the notifiers enabled in the configuration.

    Parameters
    ----------
    config : AppConfig
        Application configuration.

    Returns
    -------
    list[Notifier]
        Email and/or Telegram notifiers.
    """
    notifiers: list[Notifier] = []
    if config.mail is not None:
        notifiers.append(EmailNotifier(config.mail))
    if config.telegram is not None:
        # Imported lazily so email-only setups do not load the bot stack
        from release_watcher.telegram import TelegramNotifier

        notifiers.append(TelegramNotifier(config.telegram, proxy_url=config.defaults.proxy))
    return notifiers


class ReleaseWatcher:
    """
    One-shot release watcher.

    Coordinates feed fetching, release detection, notifications and
    state persistence for a single pass over all tracked sources.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        store: JsonStateStore | None = None,
        fetcher: FeedFetcher | None = None,
        notifiers: list[Notifier] | None = None,
        dry_run: bool = False,
    ):
        """
        Initialize the release watcher.

        Parameters
        ----------
        config : AppConfig
            Validated application configuration.
        store : JsonStateStore | None
            State store. Defaults to the configured JSON file.
        fetcher : FeedFetcher | None
            Feed fetcher. Defaults to one built from ``config.defaults``.
        notifiers : list[Notifier] | None
            Notification backends. Defaults to the configured ones.
        dry_run : bool
            If True, log notifications instead of sending them and do
            not write the state file.
        """
        self.config = config
        self.sources: list[TrackedSource] = config.tracked_sources()
        self.store = store if store is not None else JsonStateStore(config.json_file_path)
        self.fetcher = fetcher if fetcher is not None else FeedFetcher(
            timeout=config.defaults.request_timeout,
            max_retries=config.defaults.max_retries,
            user_agent=config.defaults.user_agent,
            proxy_url=config.defaults.proxy,
        )
        self.notifiers = build_notifiers(config) if notifiers is None else notifiers
        self.dry_run = dry_run

    async def run(self) -> RunReport:
        """
        Run one pass over all tracked sources.

        Returns
        -------
        RunReport
            Counters for the run.

        Raises
        ------
        StateCorruptError
            If the stored state cannot be loaded.
        StateWriteError
            If the updated state cannot be saved.
        """
        report = RunReport()
        proxy_url = self.config.defaults.proxy
        if proxy_url:
            logger.info("Using proxy: %s", redact_proxy_url(proxy_url))

        try:
            state = self.store.load()

            semaphore = asyncio.Semaphore(self.config.defaults.concurrency)

            async def guarded(source: TrackedSource) -> None:
                async with semaphore:
                    await self._process_source(source, state, report)

            await asyncio.gather(*(guarded(source) for source in self.sources))

            if self.dry_run:
                logger.info("Dry run: state file not written")
            else:
                self.store.save(state)
        finally:
            await self.close()

        report.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Run complete: %d source(s) checked, %d new release(s), "
            "%d notification(s) sent, %d failed, %d source error(s)",
            report.sources_checked,
            report.new_releases,
            report.notifications_sent,
            report.notification_failures,
            report.source_errors,
        )
        return report

    async def _process_source(
        self, source: TrackedSource, state: ReleaseState, report: RunReport
    ) -> None:
        """
        Fetch, evaluate and notify for one source.

        Errors are logged and counted; they never propagate.

        Parameters
        ----------
        source : TrackedSource
            The source to process.
        state : ReleaseState
            Shared in-memory state, updated for this source only.
        report : RunReport
            Run counters.
        """
        try:
            releases = await self.fetcher.fetch_releases(source)
            decision = detect(source, releases, state)
        except SourceError as e:
            report.source_errors += 1
            logger.error("Error processing '%s': %s", source.name, e)
            return
        except Exception:
            report.source_errors += 1
            logger.exception("Unexpected error processing '%s'", source.name)
            return

        report.sources_checked += 1
        if not decision.is_new or decision.release is None:
            return

        # Tracking is unconditional: the release is recorded before any
        # delivery and stays recorded if delivery fails.
        release = decision.release
        state[source.name] = release
        report.new_releases += 1

        if not decision.should_notify:
            report.notifications_skipped += 1
            logger.info(
                "Release '%s' for %s does not match the notification pattern, "
                "notification skipped",
                release.title,
                source.name,
            )
            return

        if self.dry_run:
            logger.info(
                "Dry run: would notify '%s'",
                render_notification(source.name, release).subject,
            )
            return

        for notifier in self.notifiers:
            try:
                await notifier.send_release(source.name, release)
                report.notifications_sent += 1
            except DeliveryError as e:
                report.notification_failures += 1
                logger.error(
                    "Notification via %s failed for '%s': %s",
                    e.channel,
                    source.name,
                    e,
                )
            except Exception:
                report.notification_failures += 1
                logger.exception(
                    "Unexpected error notifying via %s for '%s'",
                    getattr(notifier, "channel", type(notifier).__name__),
                    source.name,
                )

    async def close(self) -> None:
        """Close the fetcher and all notifiers."""
        await self.fetcher.close()
        for notifier in self.notifiers:
            try:
                await notifier.close()
            except Exception as e:
                logger.warning("Failed to close notifier: %s", e)


def setup_logging(verbose: bool = False) -> None:
    """
    Configure application logging.

    Parameters
    ----------
    verbose : bool
        If True, set log level to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.INFO

    coloredlogs.install(
        level=level,
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(logging.WARNING)


def run(config_path: str | Path, dry_run: bool = False) -> int:
    """
    Load the configuration and run one pass.

    Parameters
    ----------
    config_path : str | Path
        Path to the YAML configuration file.
    dry_run : bool
        If True, do not send notifications nor write the state file.

    Returns
    -------
    int
        Process exit code: 0 on completion, 1 on a fatal error.
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    watcher = ReleaseWatcher(config, dry_run=dry_run)

    try:
        asyncio.run(watcher.run())
    except StateCorruptError as e:
        logger.error("State load failed: %s", e)
        return 1
    except StateWriteError as e:
        logger.error("State save failed: %s", e)
        return 1

    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Release feed watcher with email and Telegram notifications",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        default=os.environ.get("CONFIG_PATH", "config.yaml"),
        help="Path to configuration file (env: CONFIG_PATH)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Detect releases without notifying or saving state",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    sys.exit(run(args.config, dry_run=args.dry_run))


if __name__ == "__main__":
    main()
