"""Date and time parsing helpers for Italian and English cinema listings.

Sources publish local wall-clock times without an offset, usually without a
year ("Lunedì 9 Febbraio ore 17:15"). These helpers turn the pieces into
timezone-aware datetimes; the timezone and DST fold are chosen per adapter.
"""

import re
from datetime import date, datetime
from zoneinfo import ZoneInfo

IT_WEEKDAYS = ["lunedì", "martedì", "mercoledì", "giovedì", "venerdì", "sabato", "domenica"]
EN_WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

IT_MONTHS = [
    "gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno",
    "luglio", "agosto", "settembre", "ottobre", "novembre", "dicembre",
]
EN_MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

# Lowercase month word (full or 3-letter abbreviation, Italian or English) → month number
MONTHS: dict[str, int] = {}
for _i, (_it, _en) in enumerate(zip(IT_MONTHS, EN_MONTHS), start=1):
    for _name in (_it, _en.lower()):
        MONTHS[_name] = _i
        MONTHS.setdefault(_name[:3], _i)
MONTHS["sept"] = 9

# Dates more than this many days before the reference are assumed to be next year
ROLLOVER_DAYS = 30

_TIME_RE = re.compile(r"(?<![\d:.])(\d{1,2})[:.](\d{2})(?!\d)\s*([ap]\.?m\.?)?", re.IGNORECASE)
_HOUR_AMPM_RE = re.compile(r"(?<![\d:.])(\d{1,2})\s*([ap]\.?m\.?)", re.IGNORECASE)
_NUMERIC_FULL_RE = re.compile(r"(?<!\d)(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})(?!\d)")
_NUMERIC_SHORT_RE = re.compile(r"(?<![\d:])(\d{1,2})[/.](\d{1,2})(?![\d:])\.?")
_DAY_MONTH_RE = re.compile(r"(?<!\d)(\d{1,2})(?:°|º)?\s+([A-Za-zÀ-ÿ]{3,})\.?(?:\s+(\d{4}))?")
_MONTH_DAY_RE = re.compile(r"\b([A-Za-z]{3,})\.?\s+(\d{1,2})(?:st|nd|rd|th)?\b(?:,?\s+(\d{4}))?")
_HOURS_MINUTES_RE = re.compile(
    r"(?<!\d)(\d{1,2})\s*(?:ore|ora|h)\b\.?\s*(?:(\d{1,2})\s*(?:minuti|min|m)\b)?", re.IGNORECASE
)
_MINUTES_RE = re.compile(r"(?<!\d)(\d{2,3})\s*(?:minuti|minutes|min\.?|m\b|'|′)", re.IGNORECASE)
_BARE_MINUTES_RE = re.compile(r"^\s*(\d{2,3})\s*$")


def _to_24h(hour: int, minute: int, period: str | None) -> tuple[int, int] | None:
    if period:
        period = period.replace(".", "").lower()
        if not 1 <= hour <= 12:
            return None
        if period == "pm" and hour < 12:
            hour += 12
        elif period == "am" and hour == 12:
            hour = 0
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour, minute


def find_times(text: str) -> list[tuple[int, int]]:
    """
    Find every clock time in a line, in order.

    Handles "17:15", "17.30", "ore 21:00", "7:30 pm", "8pm" and ranges such as
    "18:00 - 21:00" (two times).

    Examples:
        "ore 17:15 - 21.00" → [(17, 15), (21, 0)]
        "7:30pm / 9:45pm"   → [(19, 30), (21, 45)]
    """
    times: list[tuple[int, int]] = []
    for m in _TIME_RE.finditer(text):
        parsed = _to_24h(int(m.group(1)), int(m.group(2)), m.group(3))
        if parsed:
            times.append(parsed)
    if not times:
        for m in _HOUR_AMPM_RE.finditer(text):
            parsed = _to_24h(int(m.group(1)), 0, m.group(2))
            if parsed:
                times.append(parsed)
    return times


def parse_time(text: str) -> tuple[int, int] | None:
    """Parse the first clock time in a string into (hour, minute)."""
    times = find_times(text)
    return times[0] if times else None


def infer_year(day: int, month: int, reference: date) -> date | None:
    """
    Build a date from a year-less day and month.

    Uses reference.year, rolling forward one year if the result is more than
    ROLLOVER_DAYS before the reference (a January listing showing December
    dates refers to the coming December only when the gap is large).
    """
    try:
        candidate = date(reference.year, month, day)
    except ValueError:
        return None
    if (candidate - reference).days < -ROLLOVER_DAYS:
        try:
            candidate = date(reference.year + 1, month, day)
        except ValueError:
            return None
    return candidate


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(text: str, reference: date) -> date | None:
    """
    Parse a listing date into a date object.

    Supports, in order of preference:
      - "09/02/2026", "9.2.2026", "2026" years explicit
      - "Lunedì 9 Febbraio", "13 febbraio 2026", "10 Mar"
      - "Saturday, February 14", "Feb 14 2026"
      - "09/02", "14.02." (numeric, no year)

    Year-less dates are resolved with ``infer_year``.

    Returns:
        The date, or None if nothing date-like was found
    """
    m = _NUMERIC_FULL_RE.search(text)
    if m:
        return _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))

    for m in _DAY_MONTH_RE.finditer(text):
        month = MONTHS.get(m.group(2).lower())
        if month:
            day = int(m.group(1))
            if m.group(3):
                return _safe_date(int(m.group(3)), month, day)
            return infer_year(day, month, reference)

    for m in _MONTH_DAY_RE.finditer(text):
        month = MONTHS.get(m.group(1).lower())
        if month:
            day = int(m.group(2))
            if m.group(3):
                return _safe_date(int(m.group(3)), month, day)
            return infer_year(day, month, reference)

    m = _NUMERIC_SHORT_RE.search(text)
    if m:
        day, month = int(m.group(1)), int(m.group(2))
        if 1 <= month <= 12:
            return infer_year(day, month, reference)

    return None


def looks_like_date(text: str) -> bool:
    """True if the text contains a month name or a numeric day/month."""
    lowered = text.lower()
    if _NUMERIC_FULL_RE.search(text):
        return True
    for m in _DAY_MONTH_RE.finditer(lowered):
        if m.group(2) in MONTHS:
            return True
    for m in _MONTH_DAY_RE.finditer(lowered):
        if m.group(1) in MONTHS:
            return True
    return False


def localize(day: date, hour: int, minute: int, tz: ZoneInfo, fold: int = 0) -> datetime:
    """
    Attach a venue timezone to a local wall-clock time.

    ``fold`` picks the first (0) or second (1) occurrence of a wall time that
    happens twice when clocks go back; it is configured per adapter.
    """
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=tz, fold=fold)


def format_showtime(dt: datetime, language: str = "it") -> str:
    """
    Render a showtime for feed item text.

    Examples:
        it: "sabato 01/05 ore 20:00"
        en: "Saturday 1 May 2024, 20:00"
    """
    if language == "en":
        return (
            f"{EN_WEEKDAYS[dt.weekday()]} {dt.day} {EN_MONTHS[dt.month - 1]} {dt.year}, "
            f"{dt:%H:%M}"
        )
    return f"{IT_WEEKDAYS[dt.weekday()]} {dt.day:02d}/{dt.month:02d} ore {dt:%H:%M}"


def parse_running_time(text: str | None) -> int | None:
    """
    Parse a film length into minutes.

    Examples:
        "131 min"          → 131
        "Durata: 123′"     → 123
        "01 ore 42 minuti" → 102
        "1h 49m"           → 109
        "95"               → 95
    """
    if not text:
        return None
    match = _HOURS_MINUTES_RE.search(text)
    if match:
        total = int(match.group(1)) * 60 + int(match.group(2) or 0)
    else:
        match = _MINUTES_RE.search(text) or _BARE_MINUTES_RE.match(text)
        if not match:
            return None
        total = int(match.group(1))
    return total or None
