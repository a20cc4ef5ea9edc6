"""Exceptions that abort a linkprobe run.

Per-link problems never raise; they become :class:`~linkprobe.models.CheckResult`
values.  Only configuration and input problems surface as exceptions, and they
do so before any link is checked.
"""

from __future__ import annotations


class LinkProbeError(Exception):
    """Base class for every fatal linkprobe error."""


class ConfigError(LinkProbeError, ValueError):
    """The settings cannot be used (bad pattern, bad status range, …)."""


class InputError(LinkProbeError):
    """An input could not be turned into a document (missing file, fetch error)."""
