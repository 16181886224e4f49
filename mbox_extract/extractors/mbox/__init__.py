"""
Mbox extraction subpackage.

Public API:
- ``MessageSplitter``    : ``From ``-delimited block splitting
- ``HeaderParser``       : header/body boundary and folded-header parsing
- ``HeaderMap``          : ordered, case-insensitive header mapping
- ``HeaderWordDecoder``  : RFC 2047 encoded-word decoding
- ``BodyDecoder``        : quoted-printable body reversal
- ``DateNormalizer``     : Date header parsing, ordering and filtering
- ``SelfEmailClassifier``: ignored-sender / self-email decision
"""

from mbox_extract.extractors.mbox.body_decoder import BodyDecoder
from mbox_extract.extractors.mbox.date_parser import DateNormalizer
from mbox_extract.extractors.mbox.header_decoder import HeaderWordDecoder
from mbox_extract.extractors.mbox.header_parser import HeaderMap, HeaderParser
from mbox_extract.extractors.mbox.self_email_classifier import SelfEmailClassifier
from mbox_extract.extractors.mbox.splitter import MessageSplitter

__all__ = [
    "BodyDecoder",
    "DateNormalizer",
    "HeaderMap",
    "HeaderParser",
    "HeaderWordDecoder",
    "MessageSplitter",
    "SelfEmailClassifier",
]
