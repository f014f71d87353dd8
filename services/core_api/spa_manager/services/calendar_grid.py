from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from spa_manager.services.dates import first_of_month, last_of_month, to_key
from spa_manager.services.records import MAX_YEAR, MIN_YEAR

GRID_CELLS = 42
WEEKDAY_LABELS = ('Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat')


@dataclass(frozen=True)
class CalendarCell:
    date: date
    in_current_month: bool

    @property
    def key(self) -> str:
        return to_key(self.date)


def build_grid(year: int, month: int) -> list[CalendarCell]:
    """Six Sunday-first weeks covering ``year``/``month``."""
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValueError(f'year must be {MIN_YEAR}..{MAX_YEAR}')
    first = first_of_month(year, month)
    last = last_of_month(year, month)
    # date.weekday() is Monday=0; shift so Sunday=0
    lead_days = (first.weekday() + 1) % 7
    start = first - timedelta(days=lead_days)
    cells: list[CalendarCell] = []
    for idx in range(GRID_CELLS):
        current = start + timedelta(days=idx)
        cells.append(CalendarCell(date=current, in_current_month=first <= current <= last))
    return cells
