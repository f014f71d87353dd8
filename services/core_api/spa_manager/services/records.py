from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
import logging
from typing import Any

from spa_manager.services.dates import days_in_month, normalize_date

logger = logging.getLogger(__name__)

CANCELLED_STATUSES = {'cancelled', 'canceled'}
APPOINTMENT_STATUSES = ('scheduled', 'confirmed', 'completed', 'cancelled')
DEFAULT_APPOINTMENT_STATUS = 'scheduled'
LEAD_STATUSES = ('new', 'contacted', 'sold', 'discarded')
TIME_FORMATS = ('%H:%M', '%H:%M:%S', '%I:%M %p', '%I:%M%p', '%I %p')

AMOUNT_KEYS = ('amount', 'total', 'monto')
SALE_DATE_KEYS = ('date', 'sale_date', 'occurred_on')
UNIT_PRICE_KEYS = ('unit_price', 'price', 'sales_price')
TRUE_STRINGS = {'1', 'true', 't', 'yes', 'y'}
# a December grid runs into the following year
MIN_YEAR = 1900
MAX_YEAR = 9998


class PeriodMode(str, Enum):
    SINGLE_DAY = 'single-day'
    MONTH = 'month'
    YEAR = 'year'


@dataclass(frozen=True)
class PeriodFilter:
    year: int
    mode: PeriodMode = PeriodMode.MONTH
    month: int | None = None
    day: int | None = None
    branch_id: str = 'all'

    def __post_init__(self) -> None:
        if not MIN_YEAR <= int(self.year) <= MAX_YEAR:
            raise ValueError(f'year must be {MIN_YEAR}..{MAX_YEAR}')
        if not isinstance(self.mode, PeriodMode):
            object.__setattr__(self, 'mode', PeriodMode(self.mode))
        if self.mode in (PeriodMode.MONTH, PeriodMode.SINGLE_DAY):
            if self.month is None or not 1 <= int(self.month) <= 12:
                raise ValueError(f'month must be 1..12 for mode={self.mode.value}')
        if self.mode == PeriodMode.SINGLE_DAY:
            if self.day is None or not 1 <= int(self.day) <= days_in_month(self.year, int(self.month)):
                raise ValueError('day is out of range for the selected month')
        object.__setattr__(self, 'branch_id', str(self.branch_id or 'all'))

    @property
    def all_months(self) -> bool:
        return self.mode == PeriodMode.YEAR

    @property
    def selected_day(self) -> date | None:
        if self.mode != PeriodMode.SINGLE_DAY:
            return None
        return date(self.year, int(self.month), int(self.day))

    def to_dict(self) -> dict[str, Any]:
        return {
            'branch_id': self.branch_id,
            'mode': self.mode.value,
            'year': self.year,
            'month': self.month,
            'day': self.day,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> 'PeriodFilter':
        return cls(
            year=int(payload['year']),
            mode=PeriodMode(payload.get('mode') or PeriodMode.MONTH.value),
            month=int(payload['month']) if payload.get('month') is not None else None,
            day=int(payload['day']) if payload.get('day') is not None else None,
            branch_id=str(payload.get('branch_id') or 'all'),
        )

    @classmethod
    def for_day(cls, day: date, branch_id: str = 'all') -> 'PeriodFilter':
        return cls(year=day.year, mode=PeriodMode.SINGLE_DAY, month=day.month, day=day.day, branch_id=branch_id)


@dataclass(frozen=True)
class SaleRecord:
    id: str
    occurred_on: str
    branch_id: str = ''
    created_at: str | None = None
    seller_id: str | None = None
    seller_name: str | None = None
    linked_seller_name: str | None = None
    product_id: str | None = None
    product_name: str | None = None
    client_name: str = ''
    service_label: str = ''
    quantity: int = 1
    unit_price: Decimal | None = None
    stored_amount: Decimal | None = None
    payment_method: str | None = None
    notes: str | None = None
    deleted_at: str | None = None
    is_deleted: bool = False
    status: str | None = None

    @property
    def date_key(self) -> str:
        return self.occurred_on

    @property
    def units(self) -> int:
        return max(self.quantity, 1)

    @property
    def amount(self) -> Decimal:
        if self.stored_amount is not None:
            return self.stored_amount
        if self.unit_price is None:
            return Decimal('0')
        return self.unit_price * self.units

    @property
    def cancelled(self) -> bool:
        return is_cancelled(self.deleted_at, self.is_deleted, self.status)


@dataclass(frozen=True)
class AppointmentRecord:
    id: str
    date: str
    time: str = ''
    client_name: str = ''
    service_type: str = ''
    branch_id: str | None = None
    notes: str | None = None
    status: str = DEFAULT_APPOINTMENT_STATUS
    deleted_at: str | None = None

    @property
    def date_key(self) -> str:
        return self.date

    @property
    def cancelled(self) -> bool:
        return is_cancelled(self.deleted_at, False, self.status)


@dataclass(frozen=True)
class BranchRef:
    id: str
    name: str
    code: str | None = None


@dataclass(frozen=True)
class ProductRef:
    id: str
    name: str
    sku: str | None = None
    stock: int = 0
    min_stock: int = 0
    flagged_low_stock: bool = False

    @property
    def is_low_stock(self) -> bool:
        return self.flagged_low_stock or self.stock <= self.min_stock


@dataclass(frozen=True)
class LeadRef:
    id: str
    name: str
    branch_id: str = ''
    source: str | None = None
    status: str = 'new'
    created_at: str | None = None


def is_cancelled(deleted_at: Any, is_deleted: Any, status: Any) -> bool:
    if deleted_at:
        return True
    if _to_bool(is_deleted):
        return True
    return str(status or '').strip().lower() in CANCELLED_STATUSES


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return False
    if isinstance(raw, (int, float)):
        return raw != 0
    return str(raw).strip().lower() in TRUE_STRINGS


def _to_decimal(raw: Any) -> Decimal | None:
    if raw is None or isinstance(raw, bool):
        return None
    text = str(raw).strip()
    if not text:
        return None
    try:
        value = Decimal(text)
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def _to_int(raw: Any, default: int = 0) -> int:
    value = _to_decimal(raw)
    if value is None:
        return default
    return int(value)


def _text(raw: Any) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def _first(row: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = row.get(key)
        if value is not None and value != '':
            return value
    return None


def _nested(row: dict[str, Any], key: str) -> dict[str, Any]:
    value = row.get(key)
    return value if isinstance(value, dict) else {}


def normalize_time(raw: Any) -> str:
    text = str(raw or '').strip().upper()
    if not text:
        return ''
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime('%H:%M')
        except ValueError:
            continue
    return ''


def _time_from_timestamp(raw: Any) -> str:
    text = str(raw or '').strip()
    if len(text) < 16 or not normalize_date(text):
        return ''
    return normalize_time(text[11:16])


def stored_amount_from_wire(row: dict[str, Any]) -> Decimal | None:
    for key in AMOUNT_KEYS:
        value = _to_decimal(row.get(key))
        if value is not None:
            return value
    return None


def sale_from_wire(row: dict[str, Any]) -> SaleRecord:
    seller = _nested(row, 'seller')
    product = _nested(row, 'product')
    branch = _nested(row, 'branch')
    deleted_at = _first(row, ('deleted_at', 'deletedAt'))
    is_deleted = _first(row, ('is_deleted', 'isDeleted'))
    raw_date = _first(row, SALE_DATE_KEYS)
    occurred_on = normalize_date(raw_date)
    if raw_date is not None and not occurred_on:
        logger.debug('sale id=%s has unparseable date=%r', row.get('id'), raw_date)
    return SaleRecord(
        id=str(row.get('id') or ''),
        occurred_on=occurred_on,
        created_at=_text(_first(row, ('created_at', 'createdAt'))),
        branch_id=str(_first(row, ('branch_id', 'branchId')) or branch.get('id') or ''),
        seller_id=_text(_first(row, ('seller_id', 'sellerId')) or seller.get('id')),
        seller_name=_text(row.get('seller_name')),
        linked_seller_name=_text(seller.get('name')),
        product_id=_text(_first(row, ('product_id', 'productId')) or product.get('id')),
        product_name=_text(product.get('name') or row.get('product_name')),
        client_name=str(_first(row, ('client_name', 'client', 'customer_name')) or ''),
        service_label=str(_first(row, ('service_rendered', 'service_label', 'service')) or ''),
        quantity=_to_int(_first(row, ('quantity', 'qty')), default=1),
        unit_price=_to_decimal(_first(row, UNIT_PRICE_KEYS)),
        stored_amount=stored_amount_from_wire(row),
        payment_method=_text(row.get('payment_method')),
        notes=_text(row.get('notes')),
        deleted_at=_text(deleted_at),
        is_deleted=_to_bool(is_deleted),
        status=_text(row.get('status')),
    )


def appointment_from_wire(row: dict[str, Any]) -> AppointmentRecord:
    raw_date = row.get('date')
    status = str(row.get('status') or DEFAULT_APPOINTMENT_STATUS).strip().lower()
    if status in CANCELLED_STATUSES:
        status = 'cancelled'
    return AppointmentRecord(
        id=str(row.get('id') or ''),
        date=normalize_date(raw_date),
        time=normalize_time(row.get('time')) or _time_from_timestamp(raw_date),
        client_name=str(row.get('client_name') or ''),
        service_type=str(row.get('service_type') or ''),
        branch_id=_text(row.get('branch_id')),
        notes=_text(row.get('notes')),
        status=status,
        deleted_at=_text(_first(row, ('deleted_at', 'deletedAt'))),
    )


def branch_from_wire(row: dict[str, Any]) -> BranchRef:
    branch_id = str(row.get('id') or '')
    return BranchRef(id=branch_id, name=str(row.get('name') or f'Branch {branch_id}'), code=_text(row.get('code')))


def product_from_wire(row: dict[str, Any]) -> ProductRef:
    product_id = str(row.get('id') or '')
    return ProductRef(
        id=product_id,
        name=str(row.get('name') or ''),
        sku=_text(row.get('sku')),
        stock=_to_int(row.get('stock')),
        min_stock=_to_int(row.get('min_stock')),
        flagged_low_stock=_to_bool(row.get('is_low_stock')),
    )


def lead_from_wire(row: dict[str, Any]) -> LeadRef:
    return LeadRef(
        id=str(row.get('id') or ''),
        name=str(row.get('name') or ''),
        branch_id=str(row.get('branch_id') or ''),
        source=_text(row.get('source')),
        status=str(row.get('status') or 'new').strip().lower(),
        created_at=_text(row.get('created_at')),
    )
