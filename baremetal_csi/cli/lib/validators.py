"""
Input validation functions.
"""

import re

from baremetal_csi.api.models import GBYTE, KBYTE, MBYTE, TBYTE

_SIZE_SUFFIXES = {
    "": 1,
    "k": KBYTE,
    "ki": KBYTE,
    "m": MBYTE,
    "mi": MBYTE,
    "g": GBYTE,
    "gi": GBYTE,
    "t": TBYTE,
    "ti": TBYTE,
}


def validate_name(name: str) -> None:
    """
    Validate a record name (volume id, AC name, LVG name).

    Args:
        name: Name to validate

    Raises:
        ValueError: If name is invalid
    """
    if not name:
        raise ValueError("Name cannot be empty")

    if len(name) > 253:
        raise ValueError("Name must be between 1 and 253 characters")

    # Lowercase alphanumeric, dots and hyphens; alphanumeric at both ends
    if not re.match(r"^[a-z0-9]([a-z0-9.-]*[a-z0-9])?$", name):
        raise ValueError(
            "Name must start and end with a lowercase alphanumeric and contain only "
            "lowercase alphanumerics, dots, or hyphens"
        )


def parse_size(size: str) -> int:
    """
    Parse a size such as "42Gi", "512M" or "1024" into bytes.

    Suffixes are binary multiples; "G" and "Gi" mean the same thing.

    Args:
        size: Size string

    Returns:
        Size in bytes

    Raises:
        ValueError: If the size is malformed or negative
    """
    match = re.match(r"^\s*(\d+)\s*([a-zA-Z]*)\s*$", size or "")
    if not match:
        raise ValueError(f"Invalid size: {size!r}")

    number, suffix = match.groups()
    key = suffix.lower()
    if key.endswith("b"):
        key = key[:-1]
    multiplier = _SIZE_SUFFIXES.get(key)
    if multiplier is None:
        raise ValueError(f"Invalid size suffix: {suffix!r}")
    return int(number) * multiplier
