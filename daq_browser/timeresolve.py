"""Time resolution: raw DAQ timestamps to reference-zone time of day."""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

# ─── Zones ────────────────────────────────────────────────────────────────────
SOURCE_TZ = timezone.utc
DEFAULT_REFERENCE_TZ = "America/Los_Angeles"

_reference_tz: tzinfo = ZoneInfo(DEFAULT_REFERENCE_TZ)

UNKNOWN_SORT_TIME = "99:99:99"
UNKNOWN_GROUP_TIME = "??:??"

_HHMM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def set_reference_timezone(name: str) -> None:
    """Switch the reference zone (raises ZoneInfoNotFoundError on a bad name)."""
    global _reference_tz
    _reference_tz = ZoneInfo(name)


def reference_timezone() -> tzinfo:
    return _reference_tz


# ─── Resolved value ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ResolvedTime:
    """Time of day in the reference zone; empty strings when unresolved."""
    hhmm: str = ""
    hhmmss: str = ""
    local: datetime | None = None

    @property
    def resolved(self) -> bool:
        return bool(self.hhmmss)

    @property
    def sort_time(self) -> str:
        return self.hhmmss or UNKNOWN_SORT_TIME

    @property
    def group_time(self) -> str:
        return self.hhmm or UNKNOWN_GROUP_TIME


UNRESOLVED = ResolvedTime()


def _to_reference(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=SOURCE_TZ)
    return dt.astimezone(_reference_tz)


def _parse_reference_date(reference_date: str) -> date | None:
    try:
        return date.fromisoformat(reference_date.strip())
    except (AttributeError, ValueError):
        return None


def utc_dates(local_day: date) -> list[date]:
    """Source-zone (UTC) calendar dates touched by a reference-zone day."""
    start = datetime.combine(local_day, time(), tzinfo=_reference_tz).astimezone(SOURCE_TZ)
    end = datetime.combine(local_day + timedelta(days=1), time(), tzinfo=_reference_tz)
    last = (end.astimezone(SOURCE_TZ) - timedelta(microseconds=1)).date()
    dates = [start.date()]
    while dates[-1] < last:
        dates.append(dates[-1] + timedelta(days=1))
    return dates


def _anchor_time(t: time, reference_date: date, candidates: list[date] | None = None) -> datetime:
    """Place a source-zone time of day on the UTC date that lands on reference_date locally.

    A local calendar day usually spans two UTC dates, so the same wall-clock
    UTC time can belong to either. The first candidate whose local date matches wins.
    """
    if candidates is None:
        candidates = utc_dates(reference_date)
    converted = [
        _to_reference(datetime.combine(d, t, tzinfo=SOURCE_TZ)) for d in candidates
    ]
    for local in converted:
        if local.date() == reference_date:
            return local
    return converted[0]


def _wall_clock(t: time) -> datetime:
    # No date to convert against: keep the value as reference-zone wall time (naive)
    return datetime.combine(date(1900, 1, 1), t)


# ─── Strategies ───────────────────────────────────────────────────────────────

class FullDateTimeStrategy:
    """Full date + time in the timestamp field."""

    FORMATS = (
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d %H:%M:%S.%f",
        "%Y-%m-%dT%H:%M:%S.%f",
        "%Y-%m-%d %H:%M",
        "%Y-%m-%dT%H:%M",
    )

    def parse(self, timestamp: str) -> datetime | None:
        ts = timestamp.strip()
        if len(ts) < 10 or ":" not in ts:
            return None
        for fmt in self.FORMATS:
            try:
                return datetime.strptime(ts, fmt)
            except ValueError:
                continue
        try:
            # Handles explicit offsets and a trailing Z
            return datetime.fromisoformat(ts.replace("Z", "+00:00"))
        except ValueError:
            return None

    def resolve(self, timestamp: str, file_path: str, reference_date: date | None) -> datetime | None:
        if not timestamp:
            return None
        dt = self.parse(timestamp)
        if dt is None:
            return None
        return _to_reference(dt)


class TimeOnlyStrategy:
    """Bare time of day in the timestamp field, anchored to the reference date."""

    FORMATS = ("%H:%M:%S", "%H:%M:%S.%f", "%H:%M")

    def resolve(self, timestamp: str, file_path: str, reference_date: date | None) -> datetime | None:
        if not timestamp:
            return None
        ts = timestamp.strip()
        for fmt in self.FORMATS:
            try:
                t = datetime.strptime(ts, fmt).time()
            except ValueError:
                continue
            if reference_date is None:
                return _wall_clock(t)
            return _anchor_time(t, reference_date)
        return None


class PathTokenStrategy:
    """Time token in a file name shaped like DD_HH:MM:SS_host:component.log."""

    def token(self, file_path: str) -> tuple[int, str] | None:
        if not file_path:
            return None
        filename = file_path.rsplit("/", 1)[-1]
        if len(filename) > 11 and filename[2] == "_" and filename[5] == ":" and filename[8] == ":":
            day = filename[:2]
            if not day.isdigit():
                return None
            return int(day), filename[3:11]
        return None

    def resolve(self, timestamp: str, file_path: str, reference_date: date | None) -> datetime | None:
        tok = self.token(file_path)
        if tok is None:
            return None
        day, hhmmss = tok
        try:
            t = datetime.strptime(hhmmss, "%H:%M:%S").time()
        except ValueError:
            return None
        if reference_date is None:
            return _wall_clock(t)
        # The DD prefix is the UTC day of month; prefer the neighbouring date that carries it
        neighbours = [reference_date + timedelta(days=n) for n in (0, 1, -1)]
        matching = [d for d in neighbours if d.day == day]
        if matching:
            return _to_reference(datetime.combine(matching[0], t, tzinfo=SOURCE_TZ))
        return _anchor_time(t, reference_date)


STRATEGIES = (
    FullDateTimeStrategy(),
    TimeOnlyStrategy(),
    PathTokenStrategy(),
)

_FULL = STRATEGIES[0]


# ─── Public helpers ───────────────────────────────────────────────────────────

def resolve_time(timestamp: str, file_path: str, reference_date: str) -> ResolvedTime:
    """Resolve a record's time of day, trying each strategy in order."""
    ref = _parse_reference_date(reference_date) if reference_date else None
    for strategy in STRATEGIES:
        local = strategy.resolve(timestamp or "", file_path or "", ref)
        if local is not None:
            return ResolvedTime(
                hhmm=local.strftime("%H:%M"),
                hhmmss=local.strftime("%H:%M:%S"),
                local=local if local.tzinfo is not None else None,
            )
    return UNRESOLVED


def local_date(instant: str) -> str:
    """Reference-zone calendar date (YYYY-MM-DD) of a stored instant, or ""."""
    if not instant:
        return ""
    dt = _FULL.parse(instant)
    if dt is None:
        return ""
    return _to_reference(dt).strftime("%Y-%m-%d")


def parse_hhmm(text: str) -> int:
    """HH:MM → minutes since midnight, -1 when invalid."""
    if not text:
        return -1
    m = _HHMM_RE.match(text)
    if not m:
        return -1
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        return -1
    return hours * 60 + minutes
