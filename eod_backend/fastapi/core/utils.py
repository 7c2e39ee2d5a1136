"""
Utility functions for data normalization and formatting.

This module provides reusable helpers for normalizing emails and
turning venue names into slugs.
"""

import re
import unicodedata


def strip_accents(text: str) -> str:
    """
    Remove accents/diacritics from text.

    Examples:
        "Łódź" -> "Lodz"
        "Kraków" -> "Krakow"
    """
    # NFD separates base characters from combining marks; Ł/ł have no
    # decomposition and are mapped explicitly
    normalized = unicodedata.normalize('NFD', text.replace("Ł", "L").replace("ł", "l"))
    return ''.join(
        char for char in normalized
        if unicodedata.category(char) != 'Mn'
    )


def normalize_email(email: str) -> str:
    """
    Normalize an email address by stripping whitespace and lowercasing.

    Args:
        email: Raw email string

    Returns:
        Normalized email
    """
    if not email:
        return ""
    return email.strip().lower()


def slugify(name: str) -> str:
    """
    Turn a venue name into a slug for URLs and file names.

    Examples:
        "Sushi Old Town" -> "sushi-old-town"
        "Kraków Główny!" -> "krakow-glowny"

    Args:
        name: Raw venue name

    Returns:
        Lowercase slug of ASCII letters, digits and single dashes
    """
    if not name:
        return ""
    ascii_name = strip_accents(name).lower()
    return re.sub(r"[^a-z0-9]+", "-", ascii_name).strip("-")
