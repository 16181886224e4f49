"""
Self-email / ignored-sender classification.

A message is excluded when its sender matches an ignored-sender fragment,
or when it is both *from* one of the configured identities and *to* one of
them. Matching is case-insensitive substring containment of the configured
fragment in the extracted field.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from mbox_extract.extractors.mbox.config import (
    ANGLE_ADDRESS_RE,
    BARE_ADDRESS_RE,
    DISPLAY_NAME_RE,
    QUOTE_CHARS_RE,
    RECIPIENT_SEPARATOR,
)
from mbox_extract.ir import IdentityConfig
from mbox_extract.logger import get_logger

logger = get_logger(__name__)


def _contains_any(value: Optional[str], fragments: Iterable[str]) -> bool:
    if not value:
        return False
    lowered = value.lower()
    return any(fragment.lower() in lowered for fragment in fragments)


class SelfEmailClassifier:
    """Decide whether a message is self-addressed or from an ignored sender."""

    def __init__(self, identity: IdentityConfig) -> None:
        self.identity = identity

    # ------------------------------------------------------------------
    # Field extraction
    # ------------------------------------------------------------------

    @staticmethod
    def extract_address(field: str) -> Optional[str]:
        """``Name <a@b.com>`` -> ``a@b.com``; else the first bare address; else *None*."""
        if not field:
            return None
        match = ANGLE_ADDRESS_RE.search(field) or BARE_ADDRESS_RE.search(field)
        return match.group(1) if match else None

    @staticmethod
    def extract_display_name(field: str) -> Optional[str]:
        """Text before ``<`` without quotes; a field with no ``<`` and no ``@`` is all name."""
        if not field:
            return None
        match = DISPLAY_NAME_RE.match(field)
        if match:
            return QUOTE_CHARS_RE.sub("", match.group(1).strip())
        if "@" not in field:
            return QUOTE_CHARS_RE.sub("", field.strip())
        return None

    @classmethod
    def extract_addresses(cls, field: str) -> List[str]:
        entries = (entry.strip() for entry in (field or "").split(RECIPIENT_SEPARATOR))
        return [addr for addr in (cls.extract_address(e) for e in entries) if addr is not None]

    @classmethod
    def extract_display_names(cls, field: str) -> List[str]:
        entries = (entry.strip() for entry in (field or "").split(RECIPIENT_SEPARATOR))
        return [name for name in (cls.extract_display_name(e) for e in entries) if name is not None]

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    def is_ignored_sender(self, sender: str) -> bool:
        fragments = self.identity.ignored_senders
        return _contains_any(sender, fragments) or _contains_any(self.extract_display_name(sender), fragments)

    def is_from_me(self, sender: str) -> bool:
        return _contains_any(self.extract_address(sender), self.identity.my_addresses) or _contains_any(
            self.extract_display_name(sender), self.identity.my_names
        )

    def is_to_me(self, to: str) -> bool:
        return any(
            _contains_any(addr, self.identity.my_addresses) for addr in self.extract_addresses(to)
        ) or any(_contains_any(name, self.identity.my_names) for name in self.extract_display_names(to))

    def is_excluded(self, sender: str, to: str) -> bool:
        """Ignored sender, or from-me AND to-me. From-me alone does not exclude."""
        if self.is_ignored_sender(sender):
            logger.debug("Excluded (ignored sender): from=%r", sender)
            return True

        from_me = self.is_from_me(sender)
        to_me = self.is_to_me(to)
        logger.debug(
            "Self-email check: from=%r to=%r from_me=%s to_me=%s",
            sender,
            to,
            from_me,
            to_me,
        )
        return from_me and to_me
