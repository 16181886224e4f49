"""
Date header normalisation for mbox records.

Handles:
- RFC-2822 ``Date`` values (``email.utils.parsedate_to_datetime``)
- ISO-8601 values
- Trailing parenthesised comments such as ``(UTC)`` / ``(PST)``
- Ordering and date-range filtering with unparseable dates kept consistent
"""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Iterable, Iterator, Optional, Tuple

from mbox_extract.extractors.mbox.config import DATE_BOUND_FORMAT, PAREN_COMMENT_RE
from mbox_extract.ir import MessageRecord


class DateNormalizer:
    """Stateless helper that turns raw ``Date`` headers into aware datetimes."""

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _as_aware(dt: datetime) -> datetime:
        # Naive results (``-0000`` or ISO without offset) are taken as UTC.
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt

    @classmethod
    def _parse_direct(cls, text: str) -> Optional[datetime]:
        """One attempt: RFC-2822 first, then ISO-8601."""
        if not text:
            return None
        try:
            return cls._as_aware(parsedate_to_datetime(text))
        except (TypeError, ValueError, IndexError, OverflowError):
            pass
        try:
            return cls._as_aware(datetime.fromisoformat(text))
        except ValueError:
            return None

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional[datetime]:
        """Parse a ``Date`` header value; *None* means unparseable.

        Strategy:
        1. Parse the full string.
        2. Strip parenthesised comments and retry.
        """
        if not value or not value.strip():
            return None
        text = value.strip()

        parsed = cls._parse_direct(text)
        if parsed is not None:
            return parsed

        stripped = PAREN_COMMENT_RE.sub("", text).strip()
        if stripped and stripped != text:
            return cls._parse_direct(stripped)
        return None

    # ------------------------------------------------------------------
    # Ordering / filtering
    # ------------------------------------------------------------------

    @staticmethod
    def sort_key(parsed: Optional[datetime]) -> Tuple[int, datetime]:
        """Sort key placing unparseable dates last."""
        if parsed is None:
            return (1, datetime.min.replace(tzinfo=timezone.utc))
        return (0, parsed)

    @staticmethod
    def parse_bound(text: str) -> datetime:
        """Parse a ``YYYY-MM-DD`` range bound as midnight UTC.

        Raises ``ValueError`` for anything else.
        """
        try:
            return datetime.strptime(text.strip(), DATE_BOUND_FORMAT).replace(tzinfo=timezone.utc)
        except (AttributeError, ValueError):
            raise ValueError(f"Invalid date format: {text!r}. Please use YYYY-MM-DD format.")

    @staticmethod
    def in_range(
        parsed: Optional[datetime],
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> bool:
        """``since`` is inclusive, ``until`` exclusive; unparseable dates fall outside any bound."""
        if since is None and until is None:
            return True
        if parsed is None:
            return False
        if since is not None and parsed < DateNormalizer._as_aware(since):
            return False
        if until is not None and parsed >= DateNormalizer._as_aware(until):
            return False
        return True

    @classmethod
    def filter_by_date(
        cls,
        records: Iterable[MessageRecord],
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> Iterator[MessageRecord]:
        """Order-preserving filter of *records* by ``parsed_date``."""
        for record in records:
            if cls.in_range(record.parsed_date, since, until):
                yield record
