import logging
from datetime import datetime, timezone

from barberboost.models.merchant import Merchant
from barberboost.models.settings import MerchantSettings
from barberboost.services.errors import NotFoundError, ValidationError
from barberboost.services.period_calculator import local_now, parse_report_time
from barberboost.services.report_pipeline import CycleOutcome, OUTCOME_COMPLETED, OUTCOME_FAILED
from barberboost.services.result_aggregator import MerchantResultAggregator
from barberboost.utils.datetime_utils import as_utc, isoformat_z
from barberboost.utils.validation import is_valid_uuid

logger = logging.getLogger(__name__)

DUE_POLICY_TOLERANCE = 'tolerance'
DUE_POLICY_EXACT = 'exact'
MINUTES_PER_DAY = 24 * 60


class ReportScheduler:
    """
    Entry point for the external timer. Scans every merchant with settings,
    runs the report cycle for the ones whose local report time is due and
    records one result per due merchant. Whether a cycle was already
    reported is decided by the pipeline from ``last_completed_report_cycle_time``,
    not by the due check.
    """

    def __init__(self, session, pipeline, sales_fetcher, offset_provider,
                 due_policy=DUE_POLICY_TOLERANCE, tolerance_minutes=5,
                 notifier=None, send_emails=False):
        if due_policy not in (DUE_POLICY_TOLERANCE, DUE_POLICY_EXACT):
            raise ValueError(f"Unknown report due policy: {due_policy}")
        self.session = session
        self.pipeline = pipeline
        self.sales_fetcher = sales_fetcher
        self.offset_provider = offset_provider
        self.due_policy = due_policy
        self.tolerance_minutes = tolerance_minutes
        self.notifier = notifier
        self.send_emails = send_emails

    def is_due(self, report_time_of_day, zone, now) -> bool:
        local = local_now(zone, now, self.offset_provider)
        report_time = parse_report_time(report_time_of_day)

        if self.due_policy == DUE_POLICY_EXACT:
            return local.time().replace(microsecond=0) == report_time

        current_minutes = local.hour * 60 + local.minute
        report_minutes = report_time.hour * 60 + report_time.minute
        diff = abs(current_minutes - report_minutes)
        diff = min(diff, MINUTES_PER_DAY - diff)
        return diff <= self.tolerance_minutes

    def _email_report(self, outcome: CycleOutcome):
        artifact = outcome.artifact
        return self.notifier.send_report_email(
            outcome.merchant_id,
            artifact.employees,
            {'from': isoformat_z(outcome.period.start), 'to': isoformat_z(outcome.period.end)}
        )

    def _run_merchant(self, merchant, now):
        try:
            outcome = self.pipeline.run_cycle(merchant.id, now)
        except Exception as e:
            self.session.rollback()
            logger.exception("Scheduled report failed for merchant %s", merchant.id)
            return CycleOutcome(merchant.id, merchant.shop_name, OUTCOME_FAILED, error=str(e)).to_dict()

        result = outcome.to_dict()
        if outcome.outcome == OUTCOME_COMPLETED and self.send_emails and self.notifier is not None:
            try:
                result['email'] = self._email_report(outcome)
            except Exception as e:
                logger.exception("Report email failed for merchant %s", merchant.id)
                result['emailError'] = str(e)
        return result

    def run(self, now=None):
        now = as_utc(now) if now else datetime.now(timezone.utc)
        rows = self.session.query(MerchantSettings, Merchant).join(
            Merchant, MerchantSettings.merchant_id == Merchant.id
        ).all()
        logger.info("Report scheduler scanning %d merchants at %s", len(rows), now)

        aggregator = MerchantResultAggregator()
        for settings, merchant in rows:
            if not self.is_due(settings.report_time_cycle, merchant.timezone, now):
                continue
            logger.info("Merchant %s (%s) is due for a report", merchant.id, merchant.shop_name)
            aggregator.add_result(self._run_merchant(merchant, now))

        logger.info("Report scheduler processed %d merchants, %d failed",
                    aggregator.total_processed, aggregator.failure_count)
        return {
            'success': True,
            'processedReports': aggregator.total_processed,
            'timestamp': isoformat_z(now),
            'results': aggregator.results,
        }

    def sync_daily_sales(self, merchant_id=None, now=None):
        """Fetch the most recently completed cycle's sales for one or all merchants."""
        now = as_utc(now) if now else datetime.now(timezone.utc)
        query = self.session.query(Merchant).join(MerchantSettings, MerchantSettings.merchant_id == Merchant.id)
        if merchant_id:
            if not is_valid_uuid(merchant_id):
                raise ValidationError('Invalid merchant ID format')
            merchants = query.filter(Merchant.id == merchant_id).all()
            if not merchants:
                raise NotFoundError('Merchant not found')
        else:
            merchants = query.all()

        aggregator = MerchantResultAggregator()
        for merchant in merchants:
            try:
                period = self.pipeline.current_period(merchant, now)
                summary = self.sales_fetcher.fetch_sales(merchant.id, period.start, period.end)
            except Exception as e:
                self.session.rollback()
                logger.exception("Sales sync failed for merchant %s", merchant.id)
                aggregator.add_failure(merchant.id, merchant.shop_name, str(e))
                continue
            aggregator.add_success(
                merchant.id, merchant.shop_name,
                period=period.to_dict(),
                salesData=summary.to_dict()
            )

        logger.info(aggregator.summary_message('Daily sales sync'))
        return {
            'success': True,
            'message': aggregator.summary_message('Sales sync'),
            'results': aggregator.results,
        }
