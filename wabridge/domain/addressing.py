"""
Addressing - Phone Number to WhatsApp Address
=============================================

WhatsApp Web identifies a person by a "canonical address": the phone number's
digits followed by ``@c.us`` (e.g. ``6281234567890@c.us``).

KNOWN LIMITATION:
The rule strips ONE leading zero so that local numbers typed as "0812..."
lose their trunk prefix. It has no locale awareness: it does not add a
country code, and any punctuation before the zero ("+0...", "(0812)") keeps
it, because the rule only looks at the first character of the raw input.
"""

import re

CANONICAL_SUFFIX = "@c.us"

# One leading zero, every plus sign, every other non-digit
_STRIP_RE = re.compile(r"^0|\+|\D")


def normalize_address(recipient: str) -> str:
    """
    Convert a raw phone number into a canonical address.

    Already-canonical addresses are returned unchanged, so the function is
    idempotent:

        >>> normalize_address("081234567890")
        '81234567890@c.us'
        >>> normalize_address("+62 812-3456-7890")
        '6281234567890@c.us'
        >>> normalize_address("6281234567890@c.us")
        '6281234567890@c.us'
    """
    if recipient.endswith(CANONICAL_SUFFIX):
        return recipient
    return f"{_STRIP_RE.sub('', recipient)}{CANONICAL_SUFFIX}"


def address_phone(address: str) -> str:
    """Digits part of a canonical address."""
    return address.split("@", 1)[0]
