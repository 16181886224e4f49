"""
RFC 2047-style encoded-word decoding for header values.

The declared charset is ignored: payload bytes are read as UTF-8. A word that
fails to decode is left in place verbatim.
"""

from __future__ import annotations

import base64
import binascii
import quopri
from typing import Optional

from mbox_extract.extractors.mbox.config import ENCODED_WORD_RE, HEADER_TEXT_ENCODING


class HeaderWordDecoder:
    """Stateless decoder for ``=?charset?B|Q?payload?=`` words."""

    @staticmethod
    def _decode_b(payload: str) -> bytes:
        padded = payload + "=" * (-len(payload) % 4)
        return base64.b64decode(padded, validate=True)

    @staticmethod
    def _decode_q(payload: str) -> bytes:
        return quopri.decodestring(payload.encode("ascii"), header=True)

    @classmethod
    def decode_word(cls, encoding: str, payload: str) -> Optional[str]:
        """Decode one encoded word, or return *None* when it cannot be decoded."""
        try:
            if encoding.upper() == "B":
                raw = cls._decode_b(payload)
            else:
                raw = cls._decode_q(payload)
            return raw.decode(HEADER_TEXT_ENCODING)
        except (binascii.Error, UnicodeError, ValueError):
            return None

    @classmethod
    def decode(cls, value: Optional[str]) -> str:
        """Replace every encoded word in *value* and trim the result."""
        if not value:
            return ""

        def _replace(match) -> str:
            decoded = cls.decode_word(match.group(2), match.group(3))
            return match.group(0) if decoded is None else decoded

        return ENCODED_WORD_RE.sub(_replace, value).strip()
