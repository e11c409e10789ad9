"""Referral code generation and normalization."""

import secrets
import string

# Base62, case-sensitive. Lookups fall back to the lowercase form.
CODE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


def generate_referral_code(length: int = 8) -> str:
    """Generate a random referral code.

    Format: Xy9Zqw12 (8 chars by default)
    """
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    """Lowercase form used by the case-insensitive index."""
    return code.strip().lower()
