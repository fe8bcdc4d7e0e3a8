"""Per-domain page-view and unique-visitor statistics.

``DomainStats`` is the in-memory model a tracking service keeps for one
domain: site totals, per-page totals and per-day totals. Page views are
plain counters; unique visitors are ``UvCounter`` instances, one per page
and one per day.

The model serializes to a JSON-compatible dict in which every unique
visitor counter is embedded as its ``{"type", "data"}`` envelope. Loading
is forgiving at the counter level: a counter whose envelope fails to
decode is replaced by an empty one and a warning is logged, so one corrupt
field does not discard the rest of the record.

Example:
    stats = DomainStats("example.com")
    stats.track_page_view("/index.html", "client-1")
    stats.track_page_view("/index.html", "client-2")
    stats.track_page_view("/about.html", "client-1")

    stats.page_stats("/index.html")  # {"pv": 2, "uv": 2, "last_updated": ...}
    stats.page_stats()               # site: {"pv": 3, "uv": 2, ...}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any

from uvcounter.config import TierPolicy
from uvcounter.counter import UvCounter
from uvcounter.errors import FormatError

logger = logging.getLogger(__name__)

__all__ = ["DEFAULT_HISTORY_DAYS", "DailyStats", "DomainStats", "PageStats"]

DEFAULT_HISTORY_DAYS = 90


def _to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _date_key(moment: datetime) -> str:
    return moment.astimezone(UTC).date().isoformat()


@dataclass
class PageStats:
    """Totals for a single page."""

    uv: UvCounter
    pv: int = 0
    last_updated: int = 0


@dataclass
class DailyStats:
    """Totals for a single UTC day."""

    uv: UvCounter
    pv: int = 0


@dataclass
class _SiteStats:
    uv: UvCounter
    pv: int = 0
    pages: dict[str, PageStats] = field(default_factory=dict)
    daily: dict[str, DailyStats] = field(default_factory=dict)


class DomainStats:
    """Page-view and unique-visitor statistics for one domain.

    Args:
        domain: Domain the statistics belong to.
        policy: Tier policy for every unique-visitor counter created here.
    """

    def __init__(self, domain: str, policy: TierPolicy | None = None):
        self._domain = domain
        self._policy = policy
        self._site = _SiteStats(uv=self._new_counter())

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def pages(self) -> dict[str, PageStats]:
        return self._site.pages

    @property
    def daily(self) -> dict[str, DailyStats]:
        return self._site.daily

    def _new_counter(self) -> UvCounter:
        return UvCounter(self._policy)

    def track_page_view(self, page_path: str, client_id: str, now: datetime | None = None) -> None:
        """Record one view of ``page_path`` by ``client_id``.

        Args:
            page_path: Path of the viewed page.
            client_id: Opaque client identifier (fingerprint or UUID).
            now: Time of the view. Defaults to the current UTC time.
        """
        now = now if now is not None else datetime.now(UTC)

        self._site.pv += 1
        self._site.uv.add(client_id)

        page = self._site.pages.get(page_path)
        if page is None:
            page = self._site.pages[page_path] = PageStats(uv=self._new_counter())
        page.pv += 1
        page.uv.add(client_id)
        page.last_updated = _to_millis(now)

        key = _date_key(now)
        day = self._site.daily.get(key)
        if day is None:
            day = self._site.daily[key] = DailyStats(uv=self._new_counter())
        day.pv += 1
        day.uv.add(client_id)

    def page_stats(self, page_path: str | None = None) -> dict[str, int]:
        """PV/UV for a page, or for the whole site when ``page_path`` is None.

        Unknown pages report zeros.
        """
        if page_path is None:
            return {
                "pv": self._site.pv,
                "uv": self._site.uv.count(),
                "last_updated": _to_millis(datetime.now(UTC)),
            }

        page = self._site.pages.get(page_path)
        if page is None:
            return {"pv": 0, "uv": 0, "last_updated": 0}
        return {"pv": page.pv, "uv": page.uv.count(), "last_updated": page.last_updated}

    def daily_stats(self, day: str | date | None = None) -> dict[str, int]:
        """PV/UV for a UTC day (an ISO date string or ``date``); today by default."""
        if day is None:
            key = _date_key(datetime.now(UTC))
        elif isinstance(day, datetime):
            key = _date_key(day)
        elif isinstance(day, date):
            key = day.isoformat()
        else:
            key = day

        record = self._site.daily.get(key)
        if record is None:
            return {"pv": 0, "uv": 0}
        return {"pv": record.pv, "uv": record.uv.count()}

    def top_pages(self, limit: int = 10) -> list[dict[str, Any]]:
        """Pages ordered by page views, most viewed first."""
        ranked = sorted(self._site.pages.items(), key=lambda item: item[1].pv, reverse=True)
        return [
            {"path": path, "pv": page.pv, "uv": page.uv.count()}
            for path, page in ranked[:limit]
        ]

    def prune_history(self, history_days: int = DEFAULT_HISTORY_DAYS, today: date | None = None) -> list[str]:
        """Drop daily records older than the retention window.

        Args:
            history_days: Number of days to keep, counting back from today.
            today: Reference day. Defaults to the current UTC date.

        Returns:
            The date keys that were removed.
        """
        if history_days < 0:
            raise ValueError(f"history_days must be non-negative, got {history_days}")
        today = today if today is not None else datetime.now(UTC).date()
        cutoff = (today - timedelta(days=history_days)).isoformat()

        expired = sorted(key for key in self._site.daily if key < cutoff)
        for key in expired:
            del self._site.daily[key]
        if expired:
            logger.debug("Pruned %d daily records for %s before %s", len(expired), self._domain, cutoff)
        return expired

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "domain": self._domain,
            "site": {"pv": self._site.pv, "uv": self._site.uv.to_dict()},
            "pages": {
                path: {"pv": page.pv, "uv": page.uv.to_dict(), "last_updated": page.last_updated}
                for path, page in self._site.pages.items()
            },
            "daily": {
                key: {"pv": day.pv, "uv": day.uv.to_dict()}
                for key, day in self._site.daily.items()
            },
        }

    def _load_counter(self, envelope: Any, where: str) -> UvCounter:
        if envelope is None:
            return self._new_counter()
        try:
            return UvCounter.from_dict(envelope, self._policy)
        except FormatError as e:
            logger.warning(
                "Failed to load UV counter for %s %s, starting fresh: %s", self._domain, where, e
            )
            return self._new_counter()

    @classmethod
    def from_dict(cls, data: dict[str, Any], policy: TierPolicy | None = None) -> DomainStats:
        """Deserialize from a dict produced by ``to_dict()``.

        Counters that fail to decode are replaced by empty ones.

        Args:
            data: Serialized statistics.
            policy: Tier policy the counters were created with.
        """
        stats = cls(data["domain"], policy)

        site = data.get("site", {})
        stats._site.pv = int(site.get("pv", 0))
        stats._site.uv = stats._load_counter(site.get("uv"), "site")

        for path, page in data.get("pages", {}).items():
            stats._site.pages[path] = PageStats(
                uv=stats._load_counter(page.get("uv"), f"page {path}"),
                pv=int(page.get("pv", 0)),
                last_updated=int(page.get("last_updated", 0)),
            )

        for key, day in data.get("daily", {}).items():
            stats._site.daily[key] = DailyStats(
                uv=stats._load_counter(day.get("uv"), f"day {key}"),
                pv=int(day.get("pv", 0)),
            )

        return stats

    def __repr__(self) -> str:
        return (
            f"DomainStats(domain={self._domain!r}, pv={self._site.pv}, "
            f"pages={len(self._site.pages)}, days={len(self._site.daily)})"
        )
