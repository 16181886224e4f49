"""
Pytest configuration and shared fixtures.
"""
import os
import sys
import pytest

# Add project root to path for imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from mbox_extract.ir import IdentityConfig


SAMPLE_ARCHIVE = (
    "From alice@example.com Thu Jan 12 15:30:45 2023\n"
    "From: Alice Smith <alice@example.com>\n"
    "To: Bob <bob@example.com>\n"
    "Subject: =?UTF-8?B?SGVsbG8=?= world\n"
    "Date: Mon, 12 Jan 2023 15:30:45 +0000 (UTC)\n"
    "Message-ID: <1@example.com>\n"
    "\n"
    "Caf=E9 au lait=\n"
    " please\n"
    "\n"
    "From jane@example.com Fri Jan 13 09:00:00 2023\n"
    "From: Jane Doe <jane@example.com>\n"
    "To: Jane Doe <jane@example.com>\n"
    "Subject: note to self\n"
    "Date: Fri, 13 Jan 2023 09:00:00 +0000\n"
    "\n"
    "reminder\n"
    "From MAILER-DAEMON Sat Jan 14 10:00:00 2023\n"
    "From: Mail Delivery Subsystem <bounce@x.com>\n"
    "To: jane@example.com\n"
    "Subject: Undeliverable\n"
    "\n"
    "bounce\n"
    "From nobody Sun Jan 15 10:00:00 2023\n"
    "just some text without any headers\n"
    "From bob@example.com Mon Jan 16 10:00:00 2023\n"
    "From: Bob <bob@example.com>\n"
    "Subject: no recipient\n"
    "\n"
    "body\n"
)


@pytest.fixture
def sample_archive():
    """Five blocks: one kept, one self-email, one ignored sender, one headerless, one without To."""
    return SAMPLE_ARCHIVE


@pytest.fixture
def identity():
    """Identity matching the Jane Doe messages of the sample archive."""
    return IdentityConfig(
        ignored_senders=["Mail Delivery Subsystem"],
        my_addresses=["jane@example.com"],
        my_names=["Jane Doe"],
    )


def build_message(sender="A <a@x.com>", to="B <b@x.com>", subject="Hi", body="hello", extra=""):
    """Build one mbox message (delimiter line included)."""
    return (
        "From sender Thu Jan 12 15:30:45 2023\n"
        f"From: {sender}\n"
        f"To: {to}\n"
        f"Subject: {subject}\n"
        "Date: Thu, 12 Jan 2023 15:30:45 +0000\n"
        f"{extra}"
        "\n"
        f"{body}\n"
    )


@pytest.fixture
def make_message():
    """Factory for single mbox messages."""
    return build_message
