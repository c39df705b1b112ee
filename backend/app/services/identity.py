"""
Identity normalization.

Validates and canonicalizes candidate emails and the required fields of an
input record:
- format check for a single `local@domain` address
- disposable-domain and obviously-fake local part filtering
- LinkedIn handle extraction used to broaden matching
- personal vs business domain classification
"""
import logging
import re
from typing import List, Optional

logger = logging.getLogger(__name__)


REQUIRED_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "linkedin": "linkedin",
    "companyName": "company_name",
}

DISPOSABLE_DOMAINS = [
    "mailinator.com",
    "tempmail.com",
    "throwawaymail.com",
    "guerrillamail.com",
]

SUSPICIOUS_PREFIXES = ["test@", "fake@", "example@", "user@"]

PERSONAL_DOMAINS = {"gmail.com", "outlook.com", "hotmail.com", "yahoo.com"}

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
LINKEDIN_HANDLE_PATTERN = re.compile(r"linkedin\.com/in/([\w-]+)", re.IGNORECASE)

# Zero-width and invisible characters that sneak in from spreadsheet exports
INVISIBLE_CHARS = [
    '\u200b',  # Zero-width space
    '\u200c',  # Zero-width non-joiner
    '\u200d',  # Zero-width joiner
    '\u2060',  # Word joiner
    '\ufeff',  # Zero-width no-break space (BOM)
    '\u00a0',  # Non-breaking space
    '\u2007',  # Figure space
    '\u202f',  # Narrow no-break space
    '\u00ad',  # Soft hyphen
]


def clean_field(value: str) -> str:
    """Remove invisible characters and collapse whitespace."""
    if not value:
        return value
    result = value
    for char in INVISIBLE_CHARS:
        result = result.replace(char, ' ')
    return ' '.join(result.split())


def missing_required_fields(record) -> List[str]:
    """Names (as callers spell them) of required fields that are empty."""
    missing = []
    for column, attr in REQUIRED_FIELDS.items():
        value = getattr(record, attr, None)
        if not isinstance(value, str) or not value.strip():
            missing.append(column)
    return missing


def validate_email_format(email: Optional[str]) -> bool:
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email))


def normalize_and_filter(email: Optional[str]) -> Optional[str]:
    """
    Return the trimmed, lower-cased email, or None when it should not be used.

    Rejects bad formats, disposable domains (substring match on the domain)
    and obviously fake local parts. Never raises.
    """
    if not email:
        return None

    candidate = email.strip()
    if not validate_email_format(candidate):
        logger.warning(f"Invalid email format: {email}")
        return None

    normalized = candidate.lower()
    domain = normalized.split('@')[1]

    if any(disposable in domain for disposable in DISPOSABLE_DOMAINS):
        logger.warning(f"Disposable email detected: {normalized}")
        return None

    if any(normalized.startswith(prefix) for prefix in SUSPICIOUS_PREFIXES):
        logger.warning(f"Suspicious email pattern detected: {normalized}")
        return None

    return normalized


def extract_linkedin_handle(url: str) -> str:
    """Path segment after linkedin.com/in/, or the input unchanged."""
    if not url:
        return url
    match = LINKEDIN_HANDLE_PATTERN.search(url)
    return match.group(1) if match else url


def classify_domain(email: Optional[str]) -> Optional[str]:
    if not email or '@' not in email:
        return None
    domain = email.split('@', 1)[1].strip().lower()
    if not domain:
        return None
    return "personal" if domain in PERSONAL_DOMAINS else "business"
