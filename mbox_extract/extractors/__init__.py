"""
Extractors module for turning mbox archives into message records.

Provides:
- MessageAssembler: per-block orchestration with run counters
- MboxExtractor: file-level entry point (settings, identity, logging)
"""

from mbox_extract.extractors.mbox_extractor import MboxExtractor, MessageAssembler

__all__ = [
    "MboxExtractor",
    "MessageAssembler",
]
