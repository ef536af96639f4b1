import itertools

import pytest

from daq_browser.models import AreaSummary, DateSummary, Error, Level
from daq_browser.store import StoreError
from daq_browser.timeresolve import DEFAULT_REFERENCE_TZ, set_reference_timezone

DAY = "2025-01-15"

_ids = itertools.count(1)


def make_error(
    timestamp: str = "2025-01-15 15:50:00",
    component: str = "teb",
    level: Level = Level.ERROR,
    message: str = "something failed",
    error_type: str = "daq",
    line_number: int = 10,
    host: str = "drp-srcf-cmp001",
    file_path: str = "/logs/tmo/15_15:50:00_drp-srcf-cmp001:teb.log",
    reference_date: str = DAY,
    id: int | None = None,
    **kwargs,
) -> Error:
    return Error(
        id=next(_ids) if id is None else id,
        timestamp=timestamp,
        component=component,
        host=host,
        level=level,
        error_type=error_type,
        message=message,
        line_number=line_number,
        file_path=file_path,
        reference_date=reference_date,
        **kwargs,
    )


class FakeStore:
    """In-memory ErrorStore; set `fail` to make every call raise StoreError."""

    def __init__(self, areas=None, dates=None, errors=None):
        self.areas = list(areas or [])
        self.dates = dict(dates or {})
        self.errors = dict(errors or {})
        self.fail = False
        self.calls = []

    def _check(self, name, *args):
        self.calls.append((name, *args))
        if self.fail:
            raise StoreError("database is locked")

    def list_areas_with_errors(self):
        self._check("areas")
        return list(self.areas)

    def list_dates_with_errors(self, area):
        self._check("dates", area)
        return list(self.dates.get(area, []))

    def load_errors(self, area, day):
        self._check("errors", area, day)
        return list(self.errors.get((area, day), []))


@pytest.fixture(autouse=True)
def reference_tz():
    set_reference_timezone(DEFAULT_REFERENCE_TZ)
    yield
    set_reference_timezone(DEFAULT_REFERENCE_TZ)


@pytest.fixture
def day_errors():
    """Three groups on 2025-01-15 (local): 07:50 teb x2, 07:50 drp, 09:15 teb."""
    return [
        make_error("2025-01-15 15:50:10", "teb", Level.CRITICAL, "timeout waiting", id=1, line_number=5),
        make_error("2025-01-15 15:50:40", "teb", Level.ERROR, "buffer overflow", id=2, line_number=9),
        make_error("2025-01-15 15:50:20", "drp", Level.ERROR, "link down", id=3, line_number=3),
        make_error("2025-01-15 17:15:00", "teb", Level.ERROR, "timeout again", id=4, line_number=40),
    ]


@pytest.fixture
def store(day_errors):
    return FakeStore(
        areas=[AreaSummary("mfx", 2, 5), AreaSummary("tmo", 3, 4)],
        dates={"tmo": [DateSummary(DAY, 3, 4), DateSummary("2025-01-14", 1, 2)]},
        errors={("tmo", DAY): day_errors, ("tmo", "2025-01-14"): []},
    )
