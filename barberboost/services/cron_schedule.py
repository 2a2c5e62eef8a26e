import logging
from datetime import datetime, timedelta, timezone

from barberboost.models.merchant import Merchant
from barberboost.models.settings import MerchantSettings
from barberboost.services.errors import NotFoundError, ValidationError
from barberboost.services.period_calculator import (
    local_now, local_to_utc, parse_report_time,
)
from barberboost.services.result_aggregator import MerchantResultAggregator
from barberboost.utils.datetime_utils import as_utc, isoformat_z
from barberboost.utils.validation import is_valid_uuid

logger = logging.getLogger(__name__)

ACTION_STATUS = 'status'
ACTION_SETUP_ALL = 'setup_all'
SUPPORTED_ACTIONS = (ACTION_STATUS, ACTION_SETUP_ALL)


def cron_expression(report_time_of_day, zone, now, offset_provider, delay_minutes=0):
    """Daily ``minute hour * * *`` expression (UTC) for a local time plus a delay."""
    report_time = parse_report_time(report_time_of_day)
    offset = offset_provider.utc_offset(zone, as_utc(now))
    local_minutes = report_time.hour * 60 + report_time.minute + delay_minutes
    utc_minutes = int(local_minutes - offset.total_seconds() // 60) % (24 * 60)
    return f"{utc_minutes % 60} {utc_minutes // 60} * * *"


def step_cron_expressions(settings, zone, now, offset_provider):
    return {
        'schedule': cron_expression(settings.report_time_cycle, zone, now, offset_provider),
        'fetch': cron_expression(settings.report_time_cycle, zone, now, offset_provider,
                                 settings.fetch_delay_minutes or 0),
        'generate': cron_expression(settings.report_time_cycle, zone, now, offset_provider,
                                    settings.report_delay_minutes or 0),
    }


def next_run_time(report_time_of_day, zone, now, offset_provider):
    """Next UTC instant strictly after ``now`` at which the local report time occurs."""
    now = as_utc(now)
    report_time = parse_report_time(report_time_of_day)
    local = local_now(zone, now, offset_provider)
    candidate = local_to_utc(datetime.combine(local.date(), report_time), zone, offset_provider)
    if candidate <= now:
        candidate = local_to_utc(
            datetime.combine(local.date() + timedelta(days=1), report_time), zone, offset_provider
        )
    return candidate


class CronScheduleService:
    """
    Describes the external timer schedule for each merchant's report steps.
    Installing the timers is left to the deployment; this only derives and
    reports the expressions.
    """

    def __init__(self, session, offset_provider):
        self.session = session
        self.offset_provider = offset_provider

    def _describe(self, merchant, settings, now):
        expressions = step_cron_expressions(settings, merchant.timezone, now, self.offset_provider)
        return {
            'cronExpression': expressions['schedule'],
            'stepCronExpressions': expressions,
            'nextRunTime': isoformat_z(next_run_time(
                settings.report_time_cycle, merchant.timezone, now, self.offset_provider
            )),
            'lastCompletedRun': isoformat_z(settings.last_completed_report_cycle_time),
            'reportTime': settings.report_time_cycle.strftime('%H:%M:%S'),
            'timezone': merchant.timezone,
            'shopName': merchant.shop_name,
        }

    def status(self, merchant_id, now=None):
        if not is_valid_uuid(merchant_id):
            raise ValidationError('Invalid merchant ID format')
        now = as_utc(now) if now else datetime.now(timezone.utc)

        merchant = self.session.get(Merchant, merchant_id)
        if merchant is None:
            raise NotFoundError('Merchant not found')
        if merchant.settings is None:
            raise NotFoundError('Merchant settings not found')

        return {'success': True, 'status': self._describe(merchant, merchant.settings, now)}

    def setup_all(self, now=None):
        now = as_utc(now) if now else datetime.now(timezone.utc)
        rows = self.session.query(MerchantSettings, Merchant).join(
            Merchant, MerchantSettings.merchant_id == Merchant.id
        ).all()

        aggregator = MerchantResultAggregator()
        for settings, merchant in rows:
            try:
                description = self._describe(merchant, settings, now)
            except ValueError as e:
                logger.error("Cannot derive schedule for merchant %s: %s", merchant.id, e)
                aggregator.add_failure(merchant.id, merchant.shop_name, str(e))
                continue
            aggregator.add_success(
                merchant.id, merchant.shop_name,
                cronExpression=description['cronExpression'],
                stepCronExpressions=description['stepCronExpressions']
            )

        return {
            'success': True,
            'message': aggregator.summary_message('Cron job setup'),
            'results': aggregator.results,
        }

    def handle(self, action, merchant_id=None, now=None):
        if action == ACTION_STATUS:
            if not merchant_id:
                raise ValidationError('merchantId is required for status')
            return self.status(merchant_id, now)
        if action == ACTION_SETUP_ALL:
            return self.setup_all(now)
        raise ValidationError(f"Unknown action: {action}")
