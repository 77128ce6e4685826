"""
Pattern-driven field extraction.

Each domain declares its field table as plain data (an ordered tuple of
``FieldPattern``), and ``PatternExtractor`` applies it to document text.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

_NUMBER_PATTERN = re.compile(r"-?\d[\d,]*\.?\d*")


@dataclass(frozen=True)
class FieldPattern:
    """A named field and the pattern whose first group yields its value."""

    name: str
    pattern: str


class PatternExtractor:
    """
    Turns raw text into a mapping of named fields.

    Patterns are matched case-insensitively and independently of each other.
    Fields that do not match are left out of the result rather than set to
    None. Non-None metadata values are applied last and win over parsed text.
    """

    def __init__(self, patterns: tuple[FieldPattern, ...]):
        self.patterns = patterns
        self._compiled = [
            (p.name, re.compile(p.pattern, re.IGNORECASE)) for p in patterns
        ]

    @property
    def field_names(self) -> list[str]:
        return [p.name for p in self.patterns]

    def extract(
        self, content: str, metadata: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        fields: dict[str, Any] = {}

        for name, regex in self._compiled:
            match = regex.search(content or "")
            if match and match.group(1) is not None:
                fields[name] = match.group(1).strip()

        for key, value in (metadata or {}).items():
            if value is not None:
                fields[key] = value

        return fields


def to_number(value: Any) -> Optional[float]:
    """Parse a field value such as ``"1,250.50"`` or ``12.5`` into a float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    match = _NUMBER_PATTERN.search(str(value))
    if not match:
        return None
    try:
        return float(match.group(0).replace(",", ""))
    except ValueError:
        return None


def find_all(pattern: str, content: str) -> list[str]:
    """Return the stripped first group of every match of ``pattern``."""
    regex = re.compile(pattern, re.IGNORECASE)
    results = []
    for match in regex.finditer(content or ""):
        value = match.group(1) if regex.groups else match.group(0)
        if value:
            results.append(value.strip())
    return results


def mentions(content: str, pattern: str) -> bool:
    """Case-insensitive presence test used by compliance and risk rules."""
    return re.search(pattern, content or "", re.IGNORECASE) is not None
