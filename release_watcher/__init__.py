"""
Release Watcher - Track release feeds and notify on new releases.

A one-shot Python job that polls release feeds (GitHub releases by
default), records the latest release per source and sends email or
Telegram notifications for new releases matching optional filters.
"""

__version__ = "1.0.0"
__author__ = "Grégoire Compagnon"
__email__ = "obeone@obeone.org"
