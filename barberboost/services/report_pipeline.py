import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from barberboost.models.merchant import Merchant
from barberboost.models.report_pipeline_status import (
    STEP_SCHEDULE, STEP_FETCH, STEP_GENERATE,
    STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_COMPLETED,
)
from barberboost.services.errors import (
    NotFoundError, PipelinePreconditionError, StepConflictError, ValidationError,
)
from barberboost.services.period_calculator import Period, compute_period
from barberboost.utils.datetime_utils import as_utc, isoformat_z, utcnow
from barberboost.utils.validation import is_valid_uuid

logger = logging.getLogger(__name__)

OUTCOME_COMPLETED = 'completed'
OUTCOME_SKIPPED = 'skipped'
OUTCOME_FAILED = 'failed'


@dataclass
class CycleOutcome:
    merchant_id: str
    merchant_name: str
    outcome: str
    period: Optional[Period] = None
    pipeline_date: Optional[date] = None
    summary: object = None
    artifact: object = None
    error: Optional[str] = None

    @property
    def success(self):
        return self.outcome != OUTCOME_FAILED

    def to_dict(self):
        result = {
            'merchantId': self.merchant_id,
            'merchantName': self.merchant_name,
            'outcome': self.outcome,
            'success': self.success,
        }
        if self.period is not None:
            result['period'] = self.period.to_dict()
        if self.pipeline_date is not None:
            result['pipelineDate'] = self.pipeline_date.isoformat()
        if self.artifact is not None:
            result['fileName'] = self.artifact.file_name
            result['fileUrl'] = self.artifact.file_url
        if self.error:
            result['error'] = self.error
        return result


def parse_pipeline_date(value) -> date:
    if value is None:
        return datetime.now(timezone.utc).date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError('Invalid pipelineDate format. Expected YYYY-MM-DD.')


class ReportPipeline:
    """Drives schedule -> fetch -> generate for one merchant through the ledger."""

    def __init__(self, session, ledger, sales_fetcher, report_generator, offset_provider):
        self.session = session
        self.ledger = ledger
        self.sales_fetcher = sales_fetcher
        self.report_generator = report_generator
        self.offset_provider = offset_provider

    def _load_merchant(self, merchant_id):
        if not is_valid_uuid(merchant_id):
            raise ValidationError('Invalid merchant ID format')
        merchant = self.session.get(Merchant, merchant_id)
        if merchant is None:
            raise NotFoundError('Merchant not found')
        if merchant.settings is None:
            raise NotFoundError('Merchant settings not found')
        return merchant

    def current_period(self, merchant, now) -> Period:
        return compute_period(
            merchant.settings.report_time_cycle,
            merchant.timezone,
            now,
            self.offset_provider
        )

    def schedule_data_fetch(self, merchant_id, now=None, pipeline_date=None):
        """Record the cycle window and queue the fetch step."""
        merchant = self._load_merchant(merchant_id)
        now = as_utc(now) if now else datetime.now(timezone.utc)
        pipeline_date = pipeline_date or now.date()
        period = self.current_period(merchant, now)

        last_completed = merchant.settings.last_completed_report_cycle_time
        if last_completed is not None and as_utc(last_completed) >= period.end:
            raise StepConflictError(
                'Report already generated for this cycle',
                details={
                    'periodEnd': isoformat_z(period.end),
                    'lastCompletedRun': isoformat_z(last_completed),
                }
            )

        steps = self.ledger.get_steps_by_name(merchant_id, pipeline_date, [STEP_FETCH, STEP_GENERATE])
        for step_name in (STEP_FETCH, STEP_GENERATE):
            step = steps.get(step_name)
            if step is not None and step.status == STATUS_IN_PROGRESS:
                raise StepConflictError(
                    f"Pipeline step {step_name} already in progress for this pipeline date",
                    details={'step': step_name, 'currentStatus': step.status}
                )

        self.ledger.upsert_step(
            merchant_id, pipeline_date, STEP_SCHEDULE, STATUS_COMPLETED,
            started_at=now,
            completed_at=now,
            error_message=None,
            data_period_start=period.start,
            data_period_end=period.end
        )
        self.ledger.queue_step(
            merchant_id, pipeline_date, STEP_FETCH,
            started_at=None,
            completed_at=None,
            error_message=None,
            data_period_start=period.start,
            data_period_end=period.end
        )
        self.session.commit()
        logger.info("Scheduled data fetch for merchant %s on %s: %s to %s",
                    merchant_id, pipeline_date, period.start, period.end)
        return pipeline_date, period

    def fetch_sales_data(self, merchant_id, pipeline_date):
        """Run the queued fetch step and queue report generation on success."""
        if not is_valid_uuid(merchant_id):
            raise ValidationError('Invalid merchant ID format')

        steps = self.ledger.get_steps_by_name(merchant_id, pipeline_date, [STEP_FETCH, STEP_GENERATE])
        fetch_step = steps.get(STEP_FETCH)
        generate_step = steps.get(STEP_GENERATE)
        if fetch_step is None or fetch_step.status != STATUS_PENDING:
            raise PipelinePreconditionError(
                'No pending data fetch for this pipeline date',
                details={'fetchStatus': fetch_step.status if fetch_step else None}
            )
        if generate_step is not None and generate_step.status == STATUS_IN_PROGRESS:
            raise StepConflictError(
                'Report generation already in progress for this pipeline date',
                details={'step': STEP_GENERATE, 'currentStatus': generate_step.status}
            )
        period = Period(start=as_utc(fetch_step.data_period_start), end=as_utc(fetch_step.data_period_end))

        self.ledger.transition(
            merchant_id, pipeline_date, STEP_FETCH,
            STATUS_PENDING, STATUS_IN_PROGRESS,
            started_at=utcnow()
        )
        self.session.commit()

        try:
            summary = self.sales_fetcher.fetch_sales(merchant_id, period.start, period.end)
            self.ledger.transition(
                merchant_id, pipeline_date, STEP_FETCH,
                STATUS_IN_PROGRESS, STATUS_COMPLETED,
                completed_at=utcnow()
            )
            self.ledger.queue_step(
                merchant_id, pipeline_date, STEP_GENERATE,
                started_at=None,
                completed_at=None,
                error_message=None,
                data_period_start=period.start,
                data_period_end=period.end
            )
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.exception("Sales fetch failed for merchant %s on %s", merchant_id, pipeline_date)
            self.ledger.try_mark_failed(merchant_id, pipeline_date, STEP_FETCH, str(e))
            self.session.commit()
            raise

        return summary, period

    def generate_report(self, merchant_id, pipeline_date):
        if not is_valid_uuid(merchant_id):
            raise ValidationError('Invalid merchant ID format')
        return self.report_generator.generate_report(merchant_id, pipeline_date)

    def run_cycle(self, merchant_id, now=None) -> CycleOutcome:
        """
        Run every step for the merchant's most recently completed cycle, or
        report ``skipped`` when that cycle has already been reported.
        """
        merchant = self._load_merchant(merchant_id)
        now = as_utc(now) if now else datetime.now(timezone.utc)
        period = self.current_period(merchant, now)

        last_completed = merchant.settings.last_completed_report_cycle_time
        if last_completed is not None and as_utc(last_completed) >= period.end:
            logger.info("Merchant %s already reported cycle ending %s", merchant_id, period.end)
            return CycleOutcome(merchant_id, merchant.shop_name, OUTCOME_SKIPPED, period=period)

        pipeline_date, period = self.schedule_data_fetch(merchant_id, now)
        summary, _ = self.fetch_sales_data(merchant_id, pipeline_date)
        artifact = self.generate_report(merchant_id, pipeline_date)

        return CycleOutcome(
            merchant_id,
            merchant.shop_name,
            OUTCOME_COMPLETED,
            period=period,
            pipeline_date=pipeline_date,
            summary=summary,
            artifact=artifact
        )
