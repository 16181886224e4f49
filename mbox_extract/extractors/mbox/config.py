"""
Centralised configuration for the mbox extraction pipeline.

All regex patterns, placeholder values and magic-number thresholds live here.
"""

from __future__ import annotations

import re
from typing import Tuple

# ---------------------------------------------------------------------------
# Message splitting
# ---------------------------------------------------------------------------

MBOX_DELIMITER = "From "
DELIMITER_RE = re.compile(r"^From ", re.MULTILINE)

# ---------------------------------------------------------------------------
# Header / body boundary
# ---------------------------------------------------------------------------

HEADER_BODY_SEPARATOR = "\n\n"
# A fallback header line must carry its colon within this many characters
MAX_HEADER_COLON_POS = 200
CONTINUATION_PREFIXES: Tuple[str, ...] = (" ", "\t")

# Lookup precedence for the headers the record is built from
SUBJECT_KEYS: Tuple[str, ...] = ("Subject",)
FROM_KEYS: Tuple[str, ...] = ("From",)
TO_KEYS: Tuple[str, ...] = ("To",)
DATE_KEYS: Tuple[str, ...] = ("Date",)
MESSAGE_ID_KEYS: Tuple[str, ...] = ("Message-ID", "Message-Id")

# ---------------------------------------------------------------------------
# Encoded words / quoted-printable
# ---------------------------------------------------------------------------

ENCODED_WORD_RE = re.compile(r"=\?([^?]+)\?([BbQq])\?([^?]+)\?=")
HEADER_TEXT_ENCODING = "utf-8"

SOFT_LINE_BREAK_RE = re.compile(r"=\r?\n")
QP_ESCAPE_RE = re.compile(r"=([0-9A-F]{2})")

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

PAREN_COMMENT_RE = re.compile(r"\(.*?\)")
DATE_BOUND_FORMAT = "%Y-%m-%d"

# ---------------------------------------------------------------------------
# Address / display-name extraction
# ---------------------------------------------------------------------------

ANGLE_ADDRESS_RE = re.compile(r"<([^>]+)>")
BARE_ADDRESS_RE = re.compile(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")
DISPLAY_NAME_RE = re.compile(r"^([^<]+)<")
QUOTE_CHARS_RE = re.compile(r"['\"]")
RECIPIENT_SEPARATOR = ","

# ---------------------------------------------------------------------------
# Run reporting
# ---------------------------------------------------------------------------

DEFAULT_PROGRESS_EVERY = 1000
# Blocks submitted ahead of the consumer when assembling in a thread pool
PARALLEL_WINDOW_PER_WORKER = 16
