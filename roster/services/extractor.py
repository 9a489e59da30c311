# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Event descriptor extraction. Pure computation, no side effects.

Turns the human-readable announcement text into an EventDescriptor. The
registry calls this on every rehydration, so the same text must always
produce the same descriptor.
"""

import re
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from roster.core.config import settings
from roster.core.errors import DescriptorExtractionError
from roster.models.domain import EventDescriptor

FIELD_LABELS: dict[str, tuple[str, ...]] = {
    "activity_name": ("activity", "dungeon"),
    "scheduled_time": ("date/time", "date & time", "date and time", "time", "date", "when"),
    "run_id": ("run id", "run_id", "runid"),
}

_PAIRED_MARKUP = re.compile(r"(\*\*|__|~~|`)")
_EDGE_DECORATION = " \t*_~|>"
_DISCORD_TIMESTAMP = re.compile(r"<t:(-?\d+)(?::[a-zA-Z])?>")
_TRAILING_TIMESTAMP = re.compile(r"<t:-?\d+(?::[a-zA-Z])?>[\s*_~|]*$")

TIME_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %I:%M %p",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %I:%M%p",
    "%B %d, %Y %I:%M %p",
    "%b %d, %Y %I:%M %p",
)


def _label_pattern(labels: tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(re.escape(label) for label in labels)
    return re.compile(
        rf"^[^\w\n]*(?:{alternatives})[\s*_~`|>]*[:\-]\s*(?P<value>.+?)\s*$",
        re.IGNORECASE | re.MULTILINE,
    )


_PATTERNS: dict[str, list[re.Pattern]] = {
    field: [_label_pattern((label,)) for label in labels]
    for field, labels in FIELD_LABELS.items()
}


def clean_value(raw: str) -> str:
    """Strip markup decoration and surrounding whitespace.

    A trailing ``>`` that closes a ``<t:...>`` timestamp token is kept.
    """
    value = _PAIRED_MARKUP.sub("", raw).lstrip(_EDGE_DECORATION)
    if _TRAILING_TIMESTAMP.search(value):
        return value.rstrip(_EDGE_DECORATION.replace(">", ""))
    return value.rstrip(_EDGE_DECORATION)


def find_field(text: str, field: str) -> Optional[str]:
    """Return the cleaned value of the first line labelled for ``field``."""
    for pattern in _PATTERNS[field]:
        match = pattern.search(text)
        if match:
            value = clean_value(match.group("value"))
            if value:
                return value
    return None


def parse_time(raw: str, source_tz: str) -> Optional[datetime]:
    """Parse a time field into an aware datetime, or None when unrecognised."""
    stamp = _DISCORD_TIMESTAMP.search(raw)
    if stamp:
        try:
            return datetime.fromtimestamp(int(stamp.group(1)), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    candidate = raw.strip()
    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(candidate.replace("Z", "+00:00"))
    except ValueError:
        for fmt in TIME_FORMATS:
            try:
                parsed = datetime.strptime(candidate, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=ZoneInfo(source_tz))
    return parsed


def format_time(
    raw: str,
    display_tz: str | None = None,
    source_tz: str | None = None,
    display_format: str | None = None,
) -> str:
    """Render ``raw`` in the display timezone, or return it verbatim."""
    parsed = parse_time(raw, source_tz or settings.SOURCE_TIMEZONE)
    if parsed is None:
        return raw
    try:
        local = parsed.astimezone(ZoneInfo(display_tz or settings.DISPLAY_TIMEZONE))
    except OverflowError:
        return raw
    return local.strftime(display_format or settings.TIME_DISPLAY_FORMAT)


def extract_descriptor(
    text: str,
    footer: str | None = None,
    display_tz: str | None = None,
    source_tz: str | None = None,
    display_format: str | None = None,
) -> EventDescriptor:
    """
    Parse announcement text (plus optional footer) into an EventDescriptor.
    Raises DescriptorExtractionError listing every missing field.
    """
    combined = text if not footer else f"{text}\n{footer}"
    values = {field: find_field(combined, field) for field in FIELD_LABELS}
    missing = [field for field, value in values.items() if not value]
    if missing:
        raise DescriptorExtractionError(missing)

    return EventDescriptor(
        activity_name=values["activity_name"],
        scheduled_time=format_time(
            values["scheduled_time"], display_tz, source_tz, display_format
        ),
        run_id=values["run_id"],
    )
