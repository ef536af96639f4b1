"""Record types for the DAQ error browser."""

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property

from .timeresolve import ResolvedTime, resolve_time


class Level(str, Enum):
    CRITICAL = "C"
    ERROR = "E"

    @classmethod
    def parse(cls, raw: str | None) -> "Level":
        """Store values C / Critical / CRITICAL → CRITICAL, anything else → ERROR."""
        if raw and raw.strip()[:1].upper() == "C":
            return cls.CRITICAL
        return cls.ERROR

    @property
    def label(self) -> str:
        return "Critical" if self is Level.CRITICAL else "Error"


@dataclass(frozen=True)
class Error:
    """One error line extracted from a DAQ log file."""
    id: int
    timestamp: str
    component: str
    host: str
    level: Level
    error_type: str
    message: str
    line_number: int
    file_path: str
    context_before: str = ""
    context_after: str = ""
    reference_date: str = ""

    @cached_property
    def time(self) -> ResolvedTime:
        return resolve_time(self.timestamp, self.file_path, self.reference_date)

    @property
    def sort_key(self) -> tuple[str, int, int]:
        return (self.time.sort_time, self.line_number, self.id)


@dataclass(frozen=True)
class ErrorGroup:
    """Errors sharing a (HH:MM, component) key."""
    time: str
    component: str
    errors: tuple[Error, ...] = ()

    def __len__(self) -> int:
        return len(self.errors)


@dataclass(frozen=True)
class DateSummary:
    date: str
    file_count: int
    error_count: int


@dataclass(frozen=True)
class AreaSummary:
    area: str
    file_count: int
    error_count: int


# ─── Context payload ──────────────────────────────────────────────────────────

CONTEXT_HEADER_LINES = 4


@dataclass(frozen=True)
class ContextLine:
    number: int | None
    text: str


@dataclass(frozen=True)
class ContextPayload:
    """Everything the context panel shows for the selected error."""
    error_id: int
    component: str
    host: str
    file_path: str
    line_number: int
    error_type: str
    level: Level
    message: str
    before: tuple[ContextLine, ...] = field(default_factory=tuple)
    after: tuple[ContextLine, ...] = field(default_factory=tuple)

    @classmethod
    def from_error(cls, e: Error) -> "ContextPayload":
        before: list[ContextLine] = []
        if e.context_before:
            lines = e.context_before.split("\n")
            start = e.line_number - len(lines)
            for i, text in enumerate(lines):
                num = start + i
                before.append(ContextLine(num if num > 0 else None, text))
        after: list[ContextLine] = []
        if e.context_after:
            for i, text in enumerate(e.context_after.split("\n")):
                after.append(ContextLine(e.line_number + i + 1, text))
        return cls(
            error_id=e.id,
            component=e.component,
            host=e.host,
            file_path=e.file_path,
            line_number=e.line_number,
            error_type=e.error_type,
            level=e.level,
            message=e.message,
            before=tuple(before),
            after=tuple(after),
        )

    @property
    def line_count(self) -> int:
        """Unwrapped display lines: header block, before, the error line, after."""
        return CONTEXT_HEADER_LINES + len(self.before) + 1 + len(self.after)
