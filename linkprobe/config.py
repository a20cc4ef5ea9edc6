"""Centralised settings for linkprobe.

All runtime configuration is resolved here in one place.  Defaults can be
overridden via ``LINKPROBE_*`` environment variables or a ``.env`` file in the
working directory (loaded automatically when this module is imported).

The engine never reads the module-level :data:`settings` itself: callers pass
a :class:`Settings` instance explicitly, and :meth:`Settings.validate` turns
it into a :class:`CompiledPolicy` before any link is checked.
"""

from __future__ import annotations

import dataclasses
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Union

from dotenv import load_dotenv

from linkprobe import __version__
from linkprobe.errors import ConfigError

load_dotenv(Path.cwd() / ".env", override=False)

DEFAULT_USER_AGENT = f"linkprobe/{__version__}"

# Hosts that receive the GitHub token when one is configured.
GITHUB_HOSTS = ("github.com", "api.github.com", "raw.githubusercontent.com")

StatusCodes = Union[str, Iterable[int]]


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> list[str]:
    """Whitespace separated list (regexes may contain commas)."""
    return os.environ.get(name, "").split()


def _env_optional_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    if not raw or float(raw) <= 0:
        return None
    return float(raw)


def _env_basic_auth(name: str) -> Optional[tuple[str, str]]:
    raw = os.environ.get(name, "")
    if ":" not in raw:
        return None
    user, _, password = raw.partition(":")
    return (user, password)


def parse_status_codes(value: StatusCodes) -> frozenset[int]:
    """Parse ``"200,204,400..499"`` (or an iterable of ints) into a set of codes.

    Raises:
        ConfigError: If an item is not an integer, a range is inverted, or a
            code falls outside 100-999.
    """
    if not isinstance(value, str):
        codes = frozenset(int(c) for c in value)
    else:
        parsed: set[int] = set()
        for item in value.replace(" ", "").split(","):
            if not item:
                continue
            lo, sep, hi = item.partition("..")
            if not sep:
                lo, sep, hi = item.partition("-")
            try:
                start = int(lo)
                end = int(hi) if sep else start
            except ValueError:
                raise ConfigError(f"Invalid status code or range: {item!r}") from None
            if end < start:
                raise ConfigError(f"Inverted status code range: {item!r}")
            parsed.update(range(start, end + 1))
        codes = frozenset(parsed)

    bad = sorted(c for c in codes if not 100 <= c <= 999)
    if bad:
        raise ConfigError(f"Status codes out of range: {bad}")
    return codes


def _compile_patterns(patterns: Iterable[str], label: str) -> tuple[re.Pattern[str], ...]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise ConfigError(f"Invalid {label} pattern {pattern!r}: {exc}") from exc
    return tuple(compiled)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Concurrency / timing
    # ------------------------------------------------------------------
    max_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("LINKPROBE_MAX_CONCURRENCY", "32"))
    )
    max_per_host: int = field(
        default_factory=lambda: int(os.environ.get("LINKPROBE_MAX_PER_HOST", "0"))
    )
    timeout: float = field(
        default_factory=lambda: float(os.environ.get("LINKPROBE_TIMEOUT", "20.0"))
    )
    total_timeout: Optional[float] = field(
        default_factory=lambda: _env_optional_float("LINKPROBE_TOTAL_TIMEOUT")
    )

    # ------------------------------------------------------------------
    # Retry / backoff
    # ------------------------------------------------------------------
    retry_count: int = field(
        default_factory=lambda: int(os.environ.get("LINKPROBE_RETRY_COUNT", "3"))
    )
    backoff_base: float = field(
        default_factory=lambda: float(os.environ.get("LINKPROBE_BACKOFF_BASE", "1.0"))
    )
    backoff_multiplier: float = field(
        default_factory=lambda: float(os.environ.get("LINKPROBE_BACKOFF_MULTIPLIER", "2.0"))
    )
    backoff_max: float = field(
        default_factory=lambda: float(os.environ.get("LINKPROBE_BACKOFF_MAX", "30.0"))
    )
    retry_status_codes: StatusCodes = field(
        default_factory=lambda: os.environ.get(
            "LINKPROBE_RETRY_STATUS_CODES", "429,500,502,503,504"
        )
    )
    accepted_status_codes: StatusCodes = field(
        default_factory=lambda: os.environ.get("LINKPROBE_ACCEPTED_STATUS_CODES", "")
    )

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------
    include_patterns: list[str] = field(
        default_factory=lambda: _env_list("LINKPROBE_INCLUDE")
    )
    exclude_patterns: list[str] = field(
        default_factory=lambda: _env_list("LINKPROBE_EXCLUDE")
    )
    skip_private: bool = field(
        default_factory=lambda: _env_bool("LINKPROBE_SKIP_PRIVATE")
    )
    exclude_private: bool = False
    exclude_link_local: bool = False
    exclude_loopback: bool = False
    exclude_mail: bool = field(
        default_factory=lambda: _env_bool("LINKPROBE_EXCLUDE_MAIL")
    )
    scheme: Optional[str] = field(
        default_factory=lambda: os.environ.get("LINKPROBE_SCHEME") or None
    )
    check_anchors: bool = field(
        default_factory=lambda: _env_bool("LINKPROBE_CHECK_ANCHORS")
    )
    base_dir: Optional[Path] = field(
        default_factory=lambda: (
            Path(os.environ["LINKPROBE_BASE_DIR"])
            if os.environ.get("LINKPROBE_BASE_DIR")
            else None
        )
    )

    # ------------------------------------------------------------------
    # HTTP request shape
    # ------------------------------------------------------------------
    user_agent: str = field(
        default_factory=lambda: os.environ.get("LINKPROBE_USER_AGENT", DEFAULT_USER_AGENT)
    )
    method: str = field(
        default_factory=lambda: os.environ.get("LINKPROBE_METHOD", "head")
    )
    max_redirects: int = field(
        default_factory=lambda: int(os.environ.get("LINKPROBE_MAX_REDIRECTS", "5"))
    )
    insecure_tls: bool = field(
        default_factory=lambda: _env_bool("LINKPROBE_INSECURE")
    )
    basic_auth: Optional[tuple[str, str]] = field(
        default_factory=lambda: _env_basic_auth("LINKPROBE_BASIC_AUTH")
    )
    custom_headers: dict[str, str] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Rate-limit mitigation
    # ------------------------------------------------------------------
    github_token: Optional[str] = field(
        default_factory=lambda: os.environ.get("GITHUB_TOKEN") or None
    )
    host_credentials: dict[str, str] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    count_skipped_as_checked: bool = False
    log_level: str = field(
        default_factory=lambda: os.environ.get("LINKPROBE_LOG_LEVEL", "WARNING")
    )

    def replace(self, **overrides) -> "Settings":
        """Return a copy with *overrides* applied; ``None`` values are ignored."""
        return dataclasses.replace(
            self, **{k: v for k, v in overrides.items() if v is not None}
        )

    def credential_table(self) -> dict[str, str]:
        """Host pattern → token, with the GitHub token expanded onto its hosts."""
        table: dict[str, str] = {}
        if self.github_token:
            for host in GITHUB_HOSTS:
                table[host] = self.github_token
        table.update({h.lower(): t for h, t in self.host_credentials.items()})
        return table

    def validate(self) -> "CompiledPolicy":
        """Check every option and compile the patterns.

        Raises:
            ConfigError: On the first invalid option.
        """
        if self.max_concurrency < 1:
            raise ConfigError("max_concurrency must be at least 1")
        if self.max_per_host < 0:
            raise ConfigError("max_per_host must not be negative")
        if self.retry_count < 1:
            raise ConfigError("retry_count must be at least 1 (one attempt)")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")
        if self.backoff_base < 0 or self.backoff_max < 0 or self.backoff_multiplier < 1:
            raise ConfigError("backoff_base/backoff_max must be >= 0 and backoff_multiplier >= 1")
        if self.max_redirects < 0:
            raise ConfigError("max_redirects must not be negative")
        method = self.method.lower()
        if method not in {"head", "get"}:
            raise ConfigError(f"Only `get` and `head` allowed, got {self.method!r}")
        for name, value in self.custom_headers.items():
            if not name or any(c in name for c in ":\r\n") or any(c in value for c in "\r\n"):
                raise ConfigError(f"Invalid header {name!r}: {value!r}")

        return CompiledPolicy(
            settings=self,
            includes=_compile_patterns(self.include_patterns, "include"),
            excludes=_compile_patterns(self.exclude_patterns, "exclude"),
            accepted=parse_status_codes(self.accepted_status_codes),
            retryable=parse_status_codes(self.retry_status_codes),
            credentials=self.credential_table(),
            scheme=self.scheme.lower() if self.scheme else None,
            method=method,
            exclude_private=self.skip_private or self.exclude_private,
            exclude_link_local=self.skip_private or self.exclude_link_local,
            exclude_loopback=self.skip_private or self.exclude_loopback,
        )


@dataclass(frozen=True)
class CompiledPolicy:
    """Validated, immutable view of :class:`Settings` used by the engine."""

    settings: Settings
    includes: tuple[re.Pattern[str], ...]
    excludes: tuple[re.Pattern[str], ...]
    accepted: frozenset[int]
    retryable: frozenset[int]
    credentials: dict[str, str]
    scheme: Optional[str]
    method: str
    exclude_private: bool
    exclude_link_local: bool
    exclude_loopback: bool

    def credential_for(self, host: str) -> Optional[str]:
        """Return the token for *host* (exact or subdomain match), if any."""
        host = host.lower()
        for pattern, token in self.credentials.items():
            if host == pattern or host.endswith("." + pattern):
                return token
        return None


# Module-level singleton used by the CLI for its defaults:
#   from linkprobe.config import settings
settings = Settings()
