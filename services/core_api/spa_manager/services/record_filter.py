from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Iterable, Protocol, Sequence, TypeVar

from spa_manager.services.dates import first_of_month, last_of_month, to_key
from spa_manager.services.records import PeriodFilter, PeriodMode

ALL_BRANCHES = 'all'


class Visibility(str, Enum):
    ACTIVE = 'active'
    ALL = 'all'
    CANCELLED = 'cancelled'


class FilterableRecord(Protocol):
    @property
    def date_key(self) -> str: ...

    @property
    def cancelled(self) -> bool: ...


R = TypeVar('R', bound=FilterableRecord)
FieldResolver = Callable[[Any, str], Any]


@dataclass(frozen=True)
class FilterCriteria:
    branch_id: str | None = None
    start_key: str | None = None
    end_key: str | None = None
    visibility: Visibility = Visibility.ACTIVE
    search: str | None = None
    search_fields: tuple[str, ...] = ()
    # maps (record, field) to the text shown for it; plain attribute lookup when unset
    field_resolver: FieldResolver | None = None

    @property
    def has_date_range(self) -> bool:
        return bool(self.start_key or self.end_key)


def period_window(period: PeriodFilter, today: date | None = None) -> tuple[date, date]:
    """Inclusive date window covered by ``period``.

    With ``today`` the window stops at today (month to date, year to date);
    a period that starts after today yields ``start > end`` and matches nothing.
    Without it the full day/month/year is returned.
    """
    if period.mode == PeriodMode.SINGLE_DAY:
        start = end = period.selected_day
    elif period.mode == PeriodMode.MONTH:
        start = first_of_month(period.year, int(period.month))
        end = last_of_month(period.year, int(period.month))
    else:
        start = date(period.year, 1, 1)
        end = date(period.year, 12, 31)

    if today is not None and end > today:
        end = today
    return start, end


def criteria_for_period(
    period: PeriodFilter,
    today: date | None = None,
    visibility: Visibility = Visibility.ACTIVE,
    search: str | None = None,
    search_fields: Sequence[str] = (),
    field_resolver: FieldResolver | None = None,
) -> FilterCriteria:
    start, end = period_window(period, today)
    return FilterCriteria(
        branch_id=period.branch_id,
        start_key=to_key(start),
        end_key=to_key(end),
        visibility=visibility,
        search=search,
        search_fields=tuple(search_fields),
        field_resolver=field_resolver,
    )


def _matches_branch(record: Any, branch_id: str | None) -> bool:
    if not branch_id or branch_id == ALL_BRANCHES:
        return True
    return str(getattr(record, 'branch_id', None) or '') == str(branch_id)


def _matches_range(record: FilterableRecord, start_key: str | None, end_key: str | None) -> bool:
    key = record.date_key
    if not key:
        return False
    if start_key and key < start_key:
        return False
    if end_key and key > end_key:
        return False
    return True


def _matches_visibility(record: FilterableRecord, visibility: Visibility) -> bool:
    if visibility == Visibility.ALL:
        return True
    if visibility == Visibility.CANCELLED:
        return record.cancelled
    return not record.cancelled


def _attribute(record: Any, field: str) -> Any:
    return getattr(record, field, None)


def _matches_search(record: Any, needle: str, fields: tuple[str, ...], resolver: FieldResolver) -> bool:
    for field in fields:
        value = resolver(record, field)
        if value is not None and needle in str(value).lower():
            return True
    return False


def filter_records(records: Iterable[R], criteria: FilterCriteria) -> list[R]:
    needle = (criteria.search or '').strip().lower()
    out: list[R] = []
    for record in records:
        if not _matches_branch(record, criteria.branch_id):
            continue
        if criteria.has_date_range and not _matches_range(record, criteria.start_key, criteria.end_key):
            continue
        if not _matches_visibility(record, criteria.visibility):
            continue
        if needle and not _matches_search(record, needle, criteria.search_fields, criteria.field_resolver or _attribute):
            continue
        out.append(record)
    return out


def active_only(records: Iterable[R]) -> list[R]:
    return filter_records(records, FilterCriteria(visibility=Visibility.ACTIVE))
