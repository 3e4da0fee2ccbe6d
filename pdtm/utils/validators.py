"""
Input validation utilities.

Validates domain names and category tags received over the API before they
become storage keys.
"""

from __future__ import annotations

import re

# Lowercase letters, numbers, dots, hyphens; labels start and end alphanumeric
DOMAIN_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)*$")

MAX_DOMAIN_LENGTH = 253  # DNS limit

CATEGORY_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,31}$")


class ValidationError(ValueError):
    """Raised when input validation fails."""

    pass


def validate_domain(domain: str | None) -> str | None:
    """
    Validate a domain string used as a storage key.

    Args:
        domain: The domain string to validate

    Returns:
        The validated domain (lowercase) or None if input was None/empty

    Raises:
        ValidationError: If domain is invalid
    """
    if domain is None:
        return None

    domain = domain.lower().strip().rstrip(".")

    if not domain:
        return None

    if len(domain) > MAX_DOMAIN_LENGTH:
        raise ValidationError(f"Domain exceeds maximum length of {MAX_DOMAIN_LENGTH}")

    if not DOMAIN_PATTERN.match(domain):
        raise ValidationError(
            "Invalid domain format. Must contain only lowercase letters, "
            "numbers, dots, and hyphens."
        )

    return domain


def validate_category(category: str | None) -> str | None:
    """
    Validate a user-assigned category tag (e.g. "finance", "auth").

    Raises:
        ValidationError: If category is invalid
    """
    if category is None:
        return None

    category = category.strip().lower()
    if not category:
        return None

    if not CATEGORY_PATTERN.match(category):
        raise ValidationError("Invalid category. Use 1-32 lowercase letters, digits or '_'.")

    return category
