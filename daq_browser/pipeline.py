"""Filtering and grouping of a day's errors."""

import logging
from collections.abc import Iterable

from .models import Error, ErrorGroup, Level
from .timeresolve import parse_hhmm

logger = logging.getLogger(__name__)

# (error_type, message substring) pairs dropped at load time
NOISE_PATTERNS = (
    ("slurm", "CANCELLED"),
    ("slurm", "Job step aborted"),
)


def is_noise(e: Error) -> bool:
    message = e.message.lower()
    for error_type, needle in NOISE_PATTERNS:
        if e.error_type == error_type and needle.lower() in message:
            return True
    return False


def prepare_errors(raw: Iterable[Error]) -> tuple[Error, ...]:
    """Drop noise and sort chronologically (time, then line number)."""
    raw = list(raw)
    kept = [e for e in raw if not is_noise(e)]
    if len(kept) != len(raw):
        logger.debug("Dropped %d noise errors", len(raw) - len(kept))
    kept.sort(key=lambda e: e.sort_key)
    return tuple(kept)


# ─── Predicates ───────────────────────────────────────────────────────────────

def matches(e: Error, level: Level | None, component: str) -> bool:
    if level is not None and e.level != level:
        return False
    if component and component.lower() not in e.component.lower():
        return False
    return True


def filter_errors(errors: Iterable[Error], level: Level | None, component: str) -> tuple[Error, ...]:
    return tuple(e for e in errors if matches(e, level, component))


def filter_messages(errors: tuple[Error, ...], text: str) -> tuple[Error, ...]:
    """Case-insensitive message filter; empty text returns the input unchanged."""
    if not text:
        return errors
    needle = text.lower()
    return tuple(e for e in errors if needle in e.message.lower())


# ─── Grouping ─────────────────────────────────────────────────────────────────

def build_groups(errors: Iterable[Error]) -> tuple[ErrorGroup, ...]:
    """Partition errors by (HH:MM, component), sorted by time then component."""
    buckets: dict[tuple[str, str], list[Error]] = {}
    for e in errors:
        key = (e.time.group_time, e.component)
        buckets.setdefault(key, []).append(e)
    groups = [
        ErrorGroup(time=t, component=c, errors=tuple(members))
        for (t, c), members in buckets.items()
    ]
    groups.sort(key=lambda g: (g.time, g.component))
    return tuple(groups)


def nearest_group_index(groups: tuple[ErrorGroup, ...], target: str) -> int | None:
    """Index of the group closest to an HH:MM target, or None.

    Groups with an unresolvable time are skipped; ties go to the earlier group.
    """
    target_minutes = parse_hhmm(target)
    if target_minutes < 0:
        return None
    best_idx = None
    best_diff = 24 * 60
    for i, g in enumerate(groups):
        minutes = parse_hhmm(g.time)
        if minutes < 0:
            continue
        diff = abs(minutes - target_minutes)
        if best_idx is None or diff < best_diff:
            best_diff = diff
            best_idx = i
    return best_idx


def locate_error(groups: tuple[ErrorGroup, ...], error_id: int) -> tuple[int, int] | None:
    """(group index, error index) of an error id, or None."""
    for gi, g in enumerate(groups):
        for ei, e in enumerate(g.errors):
            if e.id == error_id:
                return gi, ei
    return None


def count_errors(groups: Iterable[ErrorGroup]) -> int:
    return sum(len(g.errors) for g in groups)
