"""
Canonical forms for the two identifiers a request may carry.

Emails are trimmed but otherwise kept as given (matching is case-sensitive).
Phone numbers may arrive as JSON strings or numbers; numbers are rendered as
their decimal string so that 123 and "123" match the same contacts.
"""
import math

from .exceptions import ValidationError

# Largest integer a JSON number can carry without precision loss in most clients.
MAX_SAFE_INTEGER = 2**53 - 1

MAX_EMAIL_LENGTH = 254
MAX_PHONE_NUMBER_LENGTH = 32


def normalize_email(value):
    if value is None:
        return None

    if not isinstance(value, str):
        raise ValidationError("email must be a string or null.")

    trimmed = value.strip()
    return trimmed or None


def normalize_phone_number(value):
    if value is None:
        return None

    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None

    # bool is an int subclass but true/false is never a phone number.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise ValidationError("phoneNumber must be a finite number, string, or null.")
        if abs(value) > MAX_SAFE_INTEGER:
            raise ValidationError(
                "phoneNumber is too large to be sent as a number; send it as a string."
            )
        # Phone numbers are whole; fractional floats have no stable decimal spelling.
        if isinstance(value, float):
            if not value.is_integer():
                raise ValidationError("phoneNumber must be a whole number when sent as a number.")
            value = int(value)
        return str(value)

    raise ValidationError("phoneNumber must be a string, number, or null.")


def normalize_fragment(email=None, phone_number=None):
    """Return (email, phone_number) in canonical form, rejecting an empty fragment."""
    email = normalize_email(email)
    phone_number = normalize_phone_number(phone_number)

    if not email and not phone_number:
        raise ValidationError("At least one of email or phoneNumber must be provided.")

    if email and len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"email must be at most {MAX_EMAIL_LENGTH} characters.")
    if phone_number and len(phone_number) > MAX_PHONE_NUMBER_LENGTH:
        raise ValidationError(
            f"phoneNumber must be at most {MAX_PHONE_NUMBER_LENGTH} characters."
        )

    return email, phone_number
