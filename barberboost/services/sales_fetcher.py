import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from barberboost.models.employee_commission import EmployeeCommission
from barberboost.models.employee_sales_data import EmployeeSalesData
from barberboost.models.merchant import Merchant
from barberboost.services.errors import NotFoundError, ValidationError
from barberboost.utils.datetime_utils import (
    from_epoch_millis, parse_instant, to_epoch_millis, utcnow,
)
from barberboost.utils.validation import is_valid_uuid

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
UNKNOWN_EMPLOYEE = 'Unknown Employee'


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class EmployeeDaySales:
    employee_id: str
    employee_name: str
    sales_date: date
    total_sales: Decimal
    order_count: int
    commission_rate: Decimal
    commission_amount: Decimal

    def to_dict(self):
        return {
            'employee_id': self.employee_id,
            'employee_name': self.employee_name,
            'sales_date': self.sales_date.isoformat(),
            'total_sales': float(self.total_sales),
            'order_count': self.order_count,
            'commission_rate': float(self.commission_rate),
            'commission_amount': float(self.commission_amount),
        }


@dataclass
class SalesSummary:
    records: List[EmployeeDaySales] = field(default_factory=list)
    total_employees: int = 0
    total_sales: Decimal = Decimal('0.00')
    total_commissions: Decimal = Decimal('0.00')
    order_count: int = 0

    def to_dict(self):
        return {
            'salesData': [record.to_dict() for record in self.records],
            'summary': {
                'totalEmployees': self.total_employees,
                'totalSales': float(self.total_sales),
                'totalCommissions': float(self.total_commissions),
                'orderCount': self.order_count,
            }
        }


class SalesFetcher:
    """
    Pulls employees and orders from Clover for a time window, aggregates
    sales per employee per merchant-local day, applies commission rates and
    upserts the result into ``employee_sales_data``.
    """

    def __init__(self, session, clover_client, credential_store, offset_provider,
                 default_commission_percentage=70):
        self.session = session
        self.clover = clover_client
        self.credential_store = credential_store
        self.offset_provider = offset_provider
        self.default_commission_percentage = Decimal(str(default_commission_percentage))

    def _local_date(self, instant, zone):
        return (instant + self.offset_provider.utc_offset(zone, instant)).date()

    def _commission_rates(self, merchant):
        """Return (default percentage, {employee_id: override percentage})."""
        default_rate = self.default_commission_percentage
        if merchant.settings is not None and merchant.settings.commission_percentage is not None:
            default_rate = Decimal(merchant.settings.commission_percentage)

        overrides = {
            row.employee_id: Decimal(row.commission_percentage)
            for row in self.session.query(EmployeeCommission).filter_by(merchant_id=merchant.id).all()
            if row.commission_percentage is not None
        }
        return default_rate, overrides

    def _group_orders(self, orders, roster, zone, fallback_date):
        groups = defaultdict(lambda: {'name': None, 'total_minor': 0, 'order_count': 0})
        for order in orders:
            employee = order.get('employee') or {}
            employee_id = employee.get('id')
            if not employee_id:
                continue

            created = order.get('createdTime')
            if created is None:
                order_date = fallback_date
            else:
                order_date = self._local_date(from_epoch_millis(created), zone)

            group = groups[(employee_id, order_date)]
            group['name'] = roster.get(employee_id) or employee.get('name') or UNKNOWN_EMPLOYEE
            group['total_minor'] += order.get('total') or 0
            group['order_count'] += 1
        return groups

    def _upsert(self, merchant_id, record: EmployeeDaySales):
        existing = self.session.query(EmployeeSalesData).filter_by(
            merchant_id=merchant_id,
            employee_id=record.employee_id,
            sales_date=record.sales_date
        ).first()

        if existing:
            existing.employee_name = record.employee_name
            existing.total_sales = record.total_sales
            existing.commission_amount = record.commission_amount
            existing.commission_rate = record.commission_rate
            existing.order_count = record.order_count
            existing.updated_at = utcnow()
        else:
            self.session.add(EmployeeSalesData(
                merchant_id=merchant_id,
                employee_id=record.employee_id,
                employee_name=record.employee_name,
                sales_date=record.sales_date,
                total_sales=record.total_sales,
                commission_amount=record.commission_amount,
                commission_rate=record.commission_rate,
                order_count=record.order_count
            ))

    def fetch_sales(self, merchant_id, start, end) -> SalesSummary:
        if not is_valid_uuid(merchant_id):
            raise ValidationError('Invalid merchant ID format')
        try:
            start = parse_instant(start)
            end = parse_instant(end)
        except ValueError:
            raise ValidationError('Invalid date format. Expected ISO-8601 instants.')
        if start >= end:
            raise ValidationError('startDate must be before endDate')

        merchant = self.session.get(Merchant, merchant_id)
        if merchant is None:
            raise NotFoundError('Merchant not found')

        credentials = self.credential_store.get_clover_credentials(merchant_id)
        logger.info("Fetching Clover sales for merchant %s from %s to %s", merchant_id, start, end)

        employees = self.clover.get_employees(credentials.merchant_id, credentials.api_token)
        orders = self.clover.get_orders(
            credentials.merchant_id,
            credentials.api_token,
            to_epoch_millis(start),
            to_epoch_millis(end)
        )
        logger.info("Merchant %s: %d employees, %d orders", merchant_id, len(employees), len(orders))

        roster = {employee['id']: employee.get('name') or UNKNOWN_EMPLOYEE
                  for employee in employees if employee.get('id')}
        start_date = self._local_date(start, merchant.timezone)
        groups = self._group_orders(orders, roster, merchant.timezone, start_date)

        # Roster employees without sales on the start date get one zero row for that date only.
        for employee_id, name in roster.items():
            if (employee_id, start_date) not in groups:
                groups[(employee_id, start_date)] = {'name': name, 'total_minor': 0, 'order_count': 0}

        default_rate, overrides = self._commission_rates(merchant)
        summary = SalesSummary(order_count=len(orders))

        for (employee_id, sales_date), group in sorted(groups.items(), key=lambda item: (item[0][1], item[0][0])):
            rate = overrides.get(employee_id, default_rate)
            rate = max(rate, Decimal('0'))
            total_sales = to_money(Decimal(group['total_minor']) / 100)
            commission = to_money(total_sales * rate / 100)

            record = EmployeeDaySales(
                employee_id=employee_id,
                employee_name=group['name'],
                sales_date=sales_date,
                total_sales=total_sales,
                order_count=group['order_count'],
                commission_rate=to_money(rate),
                commission_amount=commission
            )
            self._upsert(merchant_id, record)
            summary.records.append(record)
            summary.total_sales += total_sales
            summary.total_commissions += commission

        summary.total_employees = len({record.employee_id for record in summary.records})
        self.session.commit()
        logger.info("Stored %d sales rows for merchant %s", len(summary.records), merchant_id)
        return summary
