"""Authorization rules for download links.

A link is checked against four rules in a fixed order and the first one
that fails decides the denial reason:

  1. the link is enabled,
  2. the link has not expired,
  3. the download quota is not exhausted,
  4. the caller satisfies the link's user requirement.

Evaluation is pure: it only looks at the link, the caller context and the
current time. Counters are never touched here.

Malformed expiry values never expire the link, while a requirement of an
unknown shape denies everyone. Both behaviours are kept on purpose.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from digital_download.errors import (
    AuthenticationRequired,
    DownloadError,
    LinkDisabled,
    LinkExpired,
    QuotaExceeded,
    UserNotAuthorized,
)

if TYPE_CHECKING:
    from digital_download.services.links import Link

logger = logging.getLogger(__name__)

WILDCARD = "*"


@dataclass(frozen=True)
class CallerContext:
    """Who is asking: an optional user id plus the handles of their groups."""

    user_id: int | None = None
    groups: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def anonymous(cls) -> CallerContext:
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


# -----------------------------
# User requirements
# -----------------------------

class Requirement:
    def allows(self, caller: CallerContext) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class AnyUser(Requirement):
    """No restriction, anonymous callers included."""

    def allows(self, caller: CallerContext) -> bool:
        return True


@dataclass(frozen=True)
class AuthenticatedUser(Requirement):
    def allows(self, caller: CallerContext) -> bool:
        return caller.is_authenticated


@dataclass(frozen=True)
class ExactUser(Requirement):
    user_id: int

    def allows(self, caller: CallerContext) -> bool:
        return caller.is_authenticated and caller.user_id == self.user_id


@dataclass(frozen=True)
class ExactGroup(Requirement):
    handle: str

    def allows(self, caller: CallerContext) -> bool:
        return self.handle in caller.groups


@dataclass(frozen=True)
class AnyOf(Requirement):
    options: tuple[ExactUser | ExactGroup, ...]

    def allows(self, caller: CallerContext) -> bool:
        return any(option.allows(caller) for option in self.options)


@dataclass(frozen=True)
class Unrecognized(Requirement):
    """A requirement whose shape is not understood. Nobody passes it."""

    raw: Any = None

    def allows(self, caller: CallerContext) -> bool:
        return False


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return math.isfinite(float(value))
        except ValueError:
            return False
    return False


def _single(value: Any) -> ExactUser | ExactGroup | None:
    if _is_numeric(value):
        return ExactUser(int(float(value)))
    if isinstance(value, str):
        return ExactGroup(value)
    return None


def requirement_from_value(value: Any) -> Requirement:
    """Build a requirement from an already decoded JSON value."""
    if value is None:
        return AnyUser()
    if value == WILDCARD:
        return AuthenticatedUser()
    if isinstance(value, list):
        # Entries that are neither ids nor handles are skipped.
        options = tuple(option for option in map(_single, value) if option is not None)
        return AnyOf(options)
    single = _single(value)
    if single is not None:
        return single
    return Unrecognized(value)


def parse_requirement(raw: str | None) -> Requirement:
    """Decode the JSON text stored on a token into a requirement."""
    if raw is None or raw == "":
        return AnyUser()
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Unreadable user requirement %r, denying access", raw)
        return Unrecognized(raw)
    return requirement_from_value(value)


# -----------------------------
# Expiry
# -----------------------------

def expiry_timestamp(value: datetime | str | None) -> datetime | None:
    """Normalise an expiry value to an aware UTC datetime.

    Returns None when there is no expiry or it cannot be understood.
    Naive datetimes are taken to be UTC already.
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# -----------------------------
# Decision
# -----------------------------

@dataclass(frozen=True)
class Decision:
    allowed: bool
    failure: DownloadError | None = None

    @property
    def reason(self) -> str | None:
        return self.failure.reason if self.failure is not None else None

    @classmethod
    def allow(cls) -> Decision:
        return cls(True)

    @classmethod
    def deny(cls, failure: DownloadError) -> Decision:
        return cls(False, failure)


def is_unexpired(link: Link, now: datetime) -> bool:
    expires = expiry_timestamp(link.expires)
    if expires is None:
        return True
    return now < expires


def is_under_max_downloads(link: Link) -> bool:
    if not link.max_downloads or link.max_downloads <= 0:
        return True
    return link.total_downloads < link.max_downloads


def authorize(link: Link, caller: CallerContext, now: datetime | None = None) -> Decision:
    """Decide whether ``caller`` may download through ``link`` right now."""
    now = expiry_timestamp(now) if now is not None else datetime.now(timezone.utc)

    if not link.enabled:
        return Decision.deny(LinkDisabled())

    if not is_unexpired(link, now):
        return Decision.deny(LinkExpired())

    if not is_under_max_downloads(link):
        return Decision.deny(QuotaExceeded())

    if not link.requirement.allows(caller):
        if not caller.is_authenticated:
            return Decision.deny(AuthenticationRequired())
        return Decision.deny(UserNotAuthorized())

    return Decision.allow()
