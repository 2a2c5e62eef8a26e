import logging
from decimal import Decimal

from flask import render_template

from barberboost.models.merchant import Merchant, Profile
from barberboost.services.errors import NotFoundError, ValidationError
from barberboost.utils.datetime_utils import format_report_datetime, parse_instant, utcnow

logger = logging.getLogger(__name__)

EMAIL_TEMPLATE = 'emails/commission_report.html'


def format_date_range(date_range):
    """``MM/DD/YYYY HH:MM`` text; a single value when both ends are equal."""
    if not isinstance(date_range, dict) or not date_range.get('from') or not date_range.get('to'):
        raise ValidationError('dateRange with from and to is required')
    try:
        start = parse_instant(date_range['from'])
        end = parse_instant(date_range['to'])
    except ValueError:
        raise ValidationError('Invalid dateRange format')

    if date_range['from'] == date_range['to'] or start == end:
        return format_report_datetime(start)
    return f"{format_report_datetime(start)} - {format_report_datetime(end)}"


def _amount(row, name):
    value = row.get(name) if isinstance(row, dict) else getattr(row, name, None)
    return Decimal(str(value or 0))


def _name(row):
    return row.get('employee_name') if isinstance(row, dict) else row.employee_name


class ReportNotifier:
    def __init__(self, session, email_client, sender):
        self.session = session
        self.email_client = email_client
        self.sender = sender

    def _recipient(self, merchant_id):
        merchant = self.session.get(Merchant, merchant_id)
        if merchant is None:
            raise NotFoundError('Merchant not found')

        profile = self.session.get(Profile, merchant.user_id)
        if profile is None:
            raise NotFoundError('User profile not found')
        if not profile.email:
            raise ValidationError('User email not found')

        return merchant, profile.email, profile.display_name

    def send_report_email(self, merchant_id, sales_rows, date_range):
        merchant, email, greeting = self._recipient(merchant_id)
        date_range_text = format_date_range(date_range)

        employees = sorted(
            ({'employee_name': _name(row),
              'total_sales': _amount(row, 'total_sales'),
              'commission_amount': _amount(row, 'commission_amount')}
             for row in sales_rows or []),
            key=lambda row: row['total_sales'],
            reverse=True
        )
        total_sales = sum((row['total_sales'] for row in employees), Decimal('0'))
        total_commissions = sum((row['commission_amount'] for row in employees), Decimal('0'))

        html = render_template(
            EMAIL_TEMPLATE,
            shop_name=merchant.shop_name,
            recipient_name=greeting,
            date_range_text=date_range_text,
            total_sales=total_sales,
            total_commissions=total_commissions,
            employees=employees,
            generated_at=format_report_datetime(utcnow())
        )
        subject = f"Commission Report - {merchant.shop_name} ({date_range_text})"

        logger.info("Sending commission report for merchant %s to %s", merchant_id, email)
        email_id = self.email_client.send_email(self.sender, [email], subject, html)
        return {'emailId': email_id, 'sentTo': email}
