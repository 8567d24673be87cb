"""
Booking request validation and normalization.
Checks required fields before any availability lookup and sanitizes the
free-text fields that end up in the reservation record.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pydantic import ValidationError as ModelValidationError

from domain.errors import ValidationError
from domain.models import BookingRequest, ContactInfo, NewReservation, normalize_slot_time


logger = logging.getLogger(__name__)


REQUIRED_FIELDS = ("business_id", "user_id", "date", "time")

DEFAULT_PARTY_SIZE = 1

MAX_NAME_LENGTH = 100
MAX_NOTES_LENGTH = 500


@dataclass
class RequestValidation:
    """Outcome of validating a booking request."""
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    reservation: Optional[NewReservation] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors and self.reservation is not None

    def add_error(self, message: str, field_name: Optional[str] = None):
        self.errors.append(ValidationError(message=message, field=field_name))


# ============================================================================
# Name & Notes Sanitization
# ============================================================================

# Characters to remove from names
NAME_INVALID_CHARS = re.compile(r'[<>{}|\[\]\\^`~@#$%&*+=]')

# Multiple whitespace pattern
MULTIPLE_WHITESPACE = re.compile(r'\s+')

DANGEROUS_PATTERNS = [
    (r'<script[^>]*>.*?</script>', '[removed]'),
    (r'<[^>]+>', ''),  # HTML tags
    (r'javascript:', ''),
    (r'on\w+\s*=', ''),  # Event handlers
]


def sanitize_name(name: Optional[str], max_length: int = MAX_NAME_LENGTH) -> Tuple[str, List[str]]:
    """
    Sanitize a display name (customer or business).

    Args:
        name: Raw name input
        max_length: Maximum allowed length

    Returns:
        Tuple of (sanitized_name, list of warnings)
    """
    warnings = []

    if not name:
        return "", []

    sanitized = name.strip()

    original = sanitized
    sanitized = NAME_INVALID_CHARS.sub('', sanitized)
    if sanitized != original:
        warnings.append("Invalid characters were removed from name")

    sanitized = MULTIPLE_WHITESPACE.sub(' ', sanitized).strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length].rstrip()
        warnings.append(f"Name was truncated to {max_length} characters")

    return sanitized, warnings


def sanitize_notes(notes: Optional[str], max_length: int = MAX_NOTES_LENGTH) -> Tuple[Optional[str], List[str]]:
    """
    Sanitize reservation notes.

    Args:
        notes: Raw notes input
        max_length: Maximum allowed length

    Returns:
        Tuple of (sanitized_notes, list of warnings)
    """
    warnings = []

    if not notes or not notes.strip():
        return None, []

    sanitized = notes.strip()

    original = sanitized
    for pattern, replacement in DANGEROUS_PATTERNS:
        sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE | re.DOTALL)

    if sanitized != original:
        warnings.append("Potentially unsafe content was removed from notes")

    sanitized = MULTIPLE_WHITESPACE.sub(' ', sanitized).strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]
        warnings.append(f"Notes were truncated to {max_length} characters")

    return sanitized or None, warnings


def _clean_contact(contact: Optional[ContactInfo]) -> Optional[ContactInfo]:
    if contact is None or not (contact.phone or contact.email):
        return None
    return contact


# ============================================================================
# Request Validation
# ============================================================================

def validate_booking_request(request: BookingRequest) -> RequestValidation:
    """
    Validate a booking request and build the reservation data.

    Missing required fields are all reported together; no other check runs
    until they are present.

    Args:
        request: Booking request from the client

    Returns:
        RequestValidation with errors, or with the normalized NewReservation
    """
    result = RequestValidation()

    for field_name in REQUIRED_FIELDS:
        value = getattr(request, field_name)
        if value is None or (isinstance(value, str) and not value):
            result.add_error(f"{field_name} is required", field_name)

    if result.errors:
        return result

    try:
        slot = normalize_slot_time(request.time)
    except ValueError as e:
        result.add_error(str(e), "time")
        slot = None

    party_size = request.party_size if request.party_size is not None else DEFAULT_PARTY_SIZE
    if party_size < 1:
        result.add_error("Party size must be at least 1", "party_size")

    if result.errors:
        return result

    user_name, name_warnings = sanitize_name(request.user_name)
    business_name, business_warnings = sanitize_name(request.business_name, max_length=200)
    notes, notes_warnings = sanitize_notes(request.notes)
    result.warnings.extend(name_warnings + business_warnings + notes_warnings)

    if result.warnings:
        logger.info(f"Booking request for {request.business_id} normalized: {result.warnings}")

    try:
        result.reservation = NewReservation(
            business_id=request.business_id,
            business_name=business_name,
            user_id=request.user_id,
            user_name=user_name,
            contact_info=_clean_contact(request.contact_info),
            date=request.date,
            time=slot,
            party_size=party_size,
            notes=notes,
        )
    except ModelValidationError as e:
        for err in e.errors():
            location = ".".join(str(part) for part in err["loc"]) or None
            result.add_error(err["msg"], location)
    return result
