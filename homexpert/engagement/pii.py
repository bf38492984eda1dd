"""Contact-detail detection and redaction.

A household only gets a househelp's contact details through a paid profile
unlock. Free-text fields on hire requests (special requirements, negotiation
messages, decline reasons) are scrubbed so the two sides cannot trade
numbers or addresses around that step:
- Email addresses
- Phone numbers (local and international formats)
- Messaging links (wa.me, t.me)

Usage:
    from homexpert.engagement.pii import detect_contact_details, redact_contact_details

    findings = detect_contact_details("Call me on 0712 345 678")
    safe_text = redact_contact_details("Email jane@example.com")
    # Returns: "Email [REDACTED-EMAIL]"
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class ContactType(Enum):
    """Kinds of contact detail that can be detected."""

    EMAIL = "email"
    PHONE = "phone"
    MESSAGING_LINK = "messaging_link"


@dataclass
class ContactFinding:
    """A detected contact detail."""

    contact_type: ContactType
    value: str
    start: int
    end: int
    redacted: str


EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

# +254 712 345 678, 0712-345-678, (020) 123 4567, 0712345678
PHONE_PATTERN = re.compile(
    r"(?<![\w.])"
    r"(?:\+\d{1,3}[-.\s]?)?"  # Optional country code
    r"(?:\(?\d{2,4}\)?[-.\s]?)"  # Area / network prefix
    r"\d{3}[-.\s]?"
    r"\d{3,4}"
    r"(?![\w.])"
)

MESSAGING_LINK_PATTERN = re.compile(
    r"(?:https?://)?(?:www\.)?(?:wa\.me|t\.me|api\.whatsapp\.com)/\S+", re.IGNORECASE
)

_REDACTION_MARKERS = {
    ContactType.EMAIL: "[REDACTED-EMAIL]",
    ContactType.PHONE: "[REDACTED-PHONE]",
    ContactType.MESSAGING_LINK: "[REDACTED-LINK]",
}

_PATTERNS = {
    ContactType.EMAIL: EMAIL_PATTERN,
    ContactType.PHONE: PHONE_PATTERN,
    ContactType.MESSAGING_LINK: MESSAGING_LINK_PATTERN,
}


def _plausible_phone(candidate: str) -> bool:
    digits = re.sub(r"\D", "", candidate)
    # Salaries like "15000" or "18,000" stay readable
    return 9 <= len(digits) <= 15


def detect_contact_details(
    text: str,
    types: Optional[List[ContactType]] = None,
) -> List[ContactFinding]:
    """Detect contact details in text.

    Args:
        text: Text to scan
        types: Specific contact types to detect (default: all)

    Returns:
        Non-overlapping findings sorted by position
    """
    if not text:
        return []
    if types is None:
        types = list(ContactType)

    findings: List[ContactFinding] = []
    # Links and emails first so a number inside a link is not double counted
    for contact_type in (ContactType.MESSAGING_LINK, ContactType.EMAIL, ContactType.PHONE):
        if contact_type not in types:
            continue
        for match in _PATTERNS[contact_type].finditer(text):
            if contact_type is ContactType.PHONE and not _plausible_phone(match.group()):
                continue
            if any(match.start() < f.end and f.start < match.end() for f in findings):
                continue
            findings.append(
                ContactFinding(
                    contact_type=contact_type,
                    value=match.group(),
                    start=match.start(),
                    end=match.end(),
                    redacted=_REDACTION_MARKERS[contact_type],
                )
            )

    findings.sort(key=lambda f: f.start)
    return findings


def redact_contact_details(
    text: Optional[str],
    types: Optional[List[ContactType]] = None,
) -> Optional[str]:
    """Replace contact details with redaction markers. None passes through."""
    if not text:
        return text
    findings = detect_contact_details(text, types)
    if not findings:
        return text

    # Replace from the end so earlier indices stay valid
    result = text
    for finding in reversed(findings):
        result = result[: finding.start] + finding.redacted + result[finding.end :]
    return result


def contains_contact_details(text: Optional[str]) -> bool:
    return bool(text) and len(detect_contact_details(text)) > 0
