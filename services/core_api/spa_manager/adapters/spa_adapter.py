from __future__ import annotations

from datetime import date, timedelta
import logging
from random import Random
from typing import Any, Protocol

from spa_manager.clients.spa_client import SpaApiClient
from spa_manager.services.records import (
    AppointmentRecord,
    BranchRef,
    LeadRef,
    ProductRef,
    SaleRecord,
    appointment_from_wire,
    branch_from_wire,
    lead_from_wire,
    product_from_wire,
    sale_from_wire,
)

logger = logging.getLogger(__name__)


class SpaDataAdapter(Protocol):
    def list_sales(
        self,
        branch_id: str | None = None,
        include_cancelled: bool = True,
        only_cancelled: bool = False,
    ) -> list[SaleRecord]: ...

    def list_appointments(self) -> list[AppointmentRecord]: ...

    def list_branches(self) -> list[BranchRef]: ...

    def list_products(self) -> list[ProductRef]: ...

    def list_leads(self) -> list[LeadRef]: ...


def _scope_sales(
    sales: list[SaleRecord],
    branch_id: str | None,
    include_cancelled: bool,
    only_cancelled: bool,
) -> list[SaleRecord]:
    out = sales
    if branch_id and branch_id != 'all':
        out = [s for s in out if s.branch_id == branch_id]
    if only_cancelled:
        return [s for s in out if s.cancelled]
    if not include_cancelled:
        return [s for s in out if not s.cancelled]
    return out


def _flag(value: bool) -> str:
    return 'true' if value else 'false'


class RealSpaAdapter:
    ENDPOINT_SALES = '/sales'
    ENDPOINT_APPOINTMENTS = '/appointments'
    ENDPOINT_BRANCHES = '/branches'
    ENDPOINT_PRODUCTS = '/products'
    ENDPOINT_LEADS = '/leads'

    def __init__(self, client: SpaApiClient) -> None:
        self.client = client

    def list_sales(
        self,
        branch_id: str | None = None,
        include_cancelled: bool = True,
        only_cancelled: bool = False,
    ) -> list[SaleRecord]:
        params = {
            'branch_id': branch_id if branch_id and branch_id != 'all' else None,
            'include_cancelled': _flag(include_cancelled),
            'only_cancelled': _flag(only_cancelled),
        }
        rows = self.client.get_list(self.ENDPOINT_SALES, params)
        # the backend has ignored these flags in some versions; re-apply them locally
        return _scope_sales([sale_from_wire(r) for r in rows], branch_id, include_cancelled, only_cancelled)

    def list_appointments(self) -> list[AppointmentRecord]:
        return [appointment_from_wire(r) for r in self.client.get_list(self.ENDPOINT_APPOINTMENTS)]

    def list_branches(self) -> list[BranchRef]:
        return [branch_from_wire(r) for r in self.client.get_list(self.ENDPOINT_BRANCHES)]

    def list_products(self) -> list[ProductRef]:
        return [product_from_wire(r) for r in self.client.get_list(self.ENDPOINT_PRODUCTS)]

    def list_leads(self) -> list[LeadRef]:
        return [lead_from_wire(r) for r in self.client.get_list(self.ENDPOINT_LEADS)]


class MockSpaAdapter:
    BRANCHES = [
        {'id': '1', 'name': 'Hialeah', 'code': 'HIA', 'address': '123 Hialeah Dr'},
        {'id': '2', 'name': 'Flagler', 'code': 'FLA', 'address': '456 Flagler St'},
    ]
    PRODUCTS = [
        {'id': '1', 'name': 'Lavender Oil', 'sku': 'LAV-001', 'sales_price': 25.0, 'stock': 45, 'min_stock': 10, 'is_low_stock': False},
        {'id': '2', 'name': 'Facial Mask', 'sku': 'MSK-099', 'sales_price': 15.0, 'stock': 3, 'min_stock': 5, 'is_low_stock': True},
        {'id': '3', 'name': 'Deep Tissue Massage', 'sku': 'SRV-001', 'sales_price': 85.0, 'stock': 999, 'min_stock': 0, 'is_low_stock': False},
    ]
    SELLERS = [
        {'id': 'u2', 'name': 'Manager Maria'},
        {'id': 'u3', 'name': 'Seller Sarah'},
    ]
    LEADS = [
        {'id': 'l1', 'name': 'Juan Perez', 'phone': '305-123-4567', 'branch_id': '1', 'source': 'whatsapp', 'status': 'new'},
        {'id': 'l2', 'name': 'Ana Gomez', 'phone': '786-987-6543', 'branch_id': '2', 'source': 'web', 'status': 'contacted'},
        {'id': 'l3', 'name': 'Carlos Rivas', 'phone': '305-555-1234', 'branch_id': '1', 'source': 'call', 'status': 'new'},
        {'id': 'l4', 'name': 'Maria Rodriguez', 'phone': '786-111-2222', 'branch_id': '2', 'source': 'whatsapp', 'status': 'sold'},
        {'id': 'l5', 'name': 'Pedro Martinez', 'phone': '305-444-5555', 'branch_id': '1', 'source': 'web', 'status': 'discarded'},
    ]
    SERVICES = ['Facial', 'Massage', 'Manicure']
    PAYMENT_METHODS = ['Credit Card', 'Cash', 'Zelle', 'Transfer']

    def _sale_rows(self) -> list[dict[str, Any]]:
        rng = Random(42)
        today = date.today()
        rows: list[dict[str, Any]] = []
        for idx in range(60):
            day = today - timedelta(days=idx % 40)
            product = self.PRODUCTS[idx % len(self.PRODUCTS)]
            quantity = 1 + (idx % 3)
            row: dict[str, Any] = {
                'id': f's{idx}',
                'date': day.strftime('%Y-%m-%d') if idx % 4 else f"{day.strftime('%Y-%m-%d')}T00:00:00.000Z",
                'branch_id': '1' if idx % 2 == 0 else '2',
                'client_name': f'Client {idx}',
                'service_rendered': self.SERVICES[idx % len(self.SERVICES)],
                'quantity': quantity,
                'unit_price': product['sales_price'],
                'payment_method': self.PAYMENT_METHODS[idx % len(self.PAYMENT_METHODS)],
                'created_at': f"{day.strftime('%Y-%m-%d')} {9 + idx % 8:02d}:{rng.randrange(0, 60):02d}:00",
            }
            if idx % 5 == 0:
                row['seller'] = dict(self.SELLERS[idx % len(self.SELLERS)])
            elif idx % 5 != 4:
                row['seller_id'] = self.SELLERS[idx % len(self.SELLERS)]['id']
                row['seller_name'] = self.SELLERS[idx % len(self.SELLERS)]['name']
            if idx % 3 == 0:
                row['product'] = {'id': product['id'], 'name': product['name']}
            elif idx % 3 == 1:
                row['product_id'] = product['id']
            if idx % 2 == 0:
                row['amount'] = round(product['sales_price'] * quantity, 2)
            if idx % 17 == 0:
                row['deleted_at'] = f"{day.strftime('%Y-%m-%d')} 18:00:00"
            elif idx % 19 == 0:
                row['is_deleted'] = True
            elif idx % 23 == 0:
                row['status'] = 'Canceled'
            rows.append(row)
        return rows

    def _appointment_rows(self) -> list[dict[str, Any]]:
        today = date.today()
        statuses = ['scheduled', 'confirmed', 'completed', 'cancelled', None]
        services = ['Full Body Massage', 'Hydro Facial', 'Manicure']
        rows: list[dict[str, Any]] = []
        for idx in range(30):
            day = today - timedelta(days=10) + timedelta(days=idx)
            hour = 9 + idx % 8
            rows.append(
                {
                    'id': f'a{idx}',
                    'branch_id': '1' if idx % 2 == 0 else '2',
                    'client_name': f'Client {idx}',
                    'date': day.strftime('%Y-%m-%d'),
                    'time': f'{hour:02d}:00' if idx % 3 else f"{(hour - 1) % 12 + 1:02d}:30 {'AM' if hour < 12 else 'PM'}",
                    'status': statuses[idx % len(statuses)],
                    'service_type': services[idx % len(services)],
                }
            )
        return rows

    def list_sales(
        self,
        branch_id: str | None = None,
        include_cancelled: bool = True,
        only_cancelled: bool = False,
    ) -> list[SaleRecord]:
        sales = [sale_from_wire(r) for r in self._sale_rows()]
        return _scope_sales(sales, branch_id, include_cancelled, only_cancelled)

    def list_appointments(self) -> list[AppointmentRecord]:
        return [appointment_from_wire(r) for r in self._appointment_rows()]

    def list_branches(self) -> list[BranchRef]:
        return [branch_from_wire(r) for r in self.BRANCHES]

    def list_products(self) -> list[ProductRef]:
        return [product_from_wire(r) for r in self.PRODUCTS]

    def list_leads(self) -> list[LeadRef]:
        return [lead_from_wire(r) for r in self.LEADS]
