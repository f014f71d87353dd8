from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class PeriodWindow(BaseModel):
    branch_id: str
    mode: Literal['single-day', 'month', 'year']
    year: int
    month: int | None = None
    day: int | None = None
    start: str
    end: str


class KpiTotals(BaseModel):
    total_amount: str
    sales_count: int
    units_sold: int


class BucketOut(BaseModel):
    key: str
    label: str
    value: int


class ChartSeries(BaseModel):
    dimension: Literal['day_of_month', 'month_of_year', 'agent', 'product']
    buckets: list[BucketOut]


class LeadOut(BaseModel):
    id: str
    name: str
    branch_id: str = ''
    source: str | None = None
    status: str
    created_at: str | None = None


class LeadPipeline(BaseModel):
    new: int = 0
    contacted: int = 0
    sold: int = 0
    discarded: int = 0


class DashboardView(BaseModel):
    period: PeriodWindow
    today: str
    kpis: KpiTotals
    chart: ChartSeries
    by_agent: list[BucketOut]
    by_product: list[BucketOut]
    sold_leads: list[LeadOut]
    lead_pipeline: LeadPipeline
    low_stock_count: int
    error: str | None = None


class SaleItem(BaseModel):
    id: str
    date: str
    created_at: str | None = None
    branch_id: str
    branch_name: str | None = None
    seller: str
    product_id: str | None = None
    product: str
    client_name: str | None = None
    service_label: str | None = None
    quantity: int
    unit_price: str | None = None
    amount: str
    payment_method: str | None = None
    notes: str | None = None
    status: str | None = None
    cancelled: bool


class SalesView(BaseModel):
    period: PeriodWindow | None = None
    visibility: Literal['active', 'all', 'cancelled']
    search: str | None = None
    total: int
    items: list[SaleItem]
    kpis: KpiTotals
    by_day: dict[str, list[str]]
    error: str | None = None


class AppointmentItem(BaseModel):
    id: str
    date: str
    time: str = ''
    client_name: str | None = None
    service_type: str | None = None
    branch_id: str | None = None
    branch_name: str | None = None
    notes: str | None = None
    status: str
    cancelled: bool


class CalendarDay(BaseModel):
    date: str
    day: int
    in_current_month: bool
    is_today: bool
    items: list[AppointmentItem] = []


class AppointmentsView(BaseModel):
    year: int
    month: int
    today: str
    visibility: Literal['active', 'all', 'cancelled']
    cells: list[CalendarDay]
    agenda: list[AppointmentItem]
    today_agenda: list[AppointmentItem]
    status_counts: dict[str, int]
    error: str | None = None


class CalendarCellOut(BaseModel):
    date: str
    day: int
    in_current_month: bool


class CalendarGrid(BaseModel):
    year: int
    month: int
    weekdays: list[str]
    cells: list[CalendarCellOut] = Field(min_length=42, max_length=42)


class SavedFilterIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    scope: Literal['dashboard', 'sales', 'appointments']
    definition_json: dict[str, Any]


class SavedFilterOut(SavedFilterIn):
    id: str
    created_at: datetime


class AppSettings(BaseModel):
    timezone: str = 'America/New_York'
    default_branch_id: str = 'all'
    sales_search_fields: list[str] = []
    appointment_search_fields: list[str] = []
    branch_labels: dict[str, str] = {}
