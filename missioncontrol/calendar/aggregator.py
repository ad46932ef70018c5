"""Calendar aggregation: fetch every configured feed, merge, filter and sort."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from missioncontrol.calendar.ics_parser import ParseResult, parse_ics
from missioncontrol.domain.action_store import EventActionStore
from missioncontrol.models import (
    AggregationResult,
    CalendarEvent,
    CalendarSource,
    SourceReport,
    SourceStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_FETCH_CONCURRENCY = 3


class FeedFetcher(Protocol):
    async def fetch_text(self, source: CalendarSource) -> str: ...


class CalendarAggregator:
    """Merges events from several ICS feeds into one sorted list.

    A failure in one feed is logged and reported for that feed only; the other
    feeds still contribute their events.
    """

    def __init__(
        self,
        fetcher: FeedFetcher,
        action_store: EventActionStore,
        fetch_concurrency: int = DEFAULT_FETCH_CONCURRENCY,
    ) -> None:
        """Initialize the aggregator.

        Args:
            fetcher: Object with ``async fetch_text(source) -> str``
            action_store: Store whose completed/dismissed ids are filtered out
            fetch_concurrency: Maximum number of feeds fetched at once
        """
        self.fetcher = fetcher
        self.action_store = action_store
        self.fetch_concurrency = max(1, fetch_concurrency)

    async def _fetch_and_parse(
        self, semaphore: asyncio.Semaphore, source: CalendarSource
    ) -> ParseResult:
        async with semaphore:
            text = await self.fetcher.fetch_text(source)
        return parse_ics(text, source.name)

    async def aggregate(self, sources: list[CalendarSource]) -> AggregationResult:
        """Fetch, parse, merge, filter and sort events from ``sources``.

        Args:
            sources: Feeds in display order; unconfigured ones are skipped

        Returns:
            AggregationResult with events sorted by date (ties keep feed
            order), pre- and post-filter counts and a report per source.
        """
        reports = [SourceReport(name=s.name, configured=s.configured) for s in sources]
        configured = [(i, s) for i, s in enumerate(sources) if s.configured]

        for report in reports:
            if not report.configured:
                logger.info("Skipping %s: URL not configured", report.name)

        semaphore = asyncio.Semaphore(self.fetch_concurrency)
        results = await asyncio.gather(
            *(self._fetch_and_parse(semaphore, source) for _, source in configured),
            return_exceptions=True,
        )

        all_events: list[CalendarEvent] = []
        for (index, source), result in zip(configured, results):
            report = reports[index]
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error("Error fetching %s calendar: %s", source.name, result)
                report.status = SourceStatus.ERROR
                report.error = str(result) or result.__class__.__name__
                continue

            report.status = SourceStatus.OK
            report.event_count = len(result.events)
            report.dropped_blocks = result.dropped_blocks
            all_events.extend(result.events)
            logger.info("Successfully loaded %d events from %s", len(result.events), source.name)

        excluded = self.action_store.excluded_ids()
        remaining = [event for event in all_events if event.id not in excluded]
        # Stable sort: same-day events stay in feed order.
        remaining.sort(key=lambda event: event.date)

        logger.debug(
            "Aggregated %d events (%d after completed/dismissed filter)",
            len(all_events),
            len(remaining),
        )
        return AggregationResult(
            events=remaining,
            total_count=len(all_events),
            filtered_count=len(remaining),
            sources=reports,
        )


def build_calendar_payload(
    result: AggregationResult, action_store: EventActionStore
) -> dict[str, Any]:
    """Render an aggregation result as the ``/api/calendar`` JSON body."""
    return {
        "events": result.events_as_dicts(),
        "total_events": result.total_count,
        "filtered_events": result.filtered_count,
        "completed_count": action_store.completed_count,
        "dismissed_count": action_store.dismissed_count,
        "sources": [report.model_dump() for report in result.sources],
    }
