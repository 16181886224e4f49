"""
Best-effort quoted-printable reversal for message bodies.
"""

from __future__ import annotations

from mbox_extract.extractors.mbox.config import QP_ESCAPE_RE, SOFT_LINE_BREAK_RE


class BodyDecoder:
    """Stateless quoted-printable body cleaner."""

    @staticmethod
    def decode(body: str) -> str:
        """Drop soft line breaks, expand ``=XY`` escapes, trim.

        Only two uppercase hex digits form an escape; anything else after
        ``=`` stays literal. Each escape becomes the character with that code
        point (``=E9`` -> ``é``), no charset is applied.
        """
        if not body:
            return ""
        text = SOFT_LINE_BREAK_RE.sub("", body)
        text = QP_ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), text)
        return text.strip()
