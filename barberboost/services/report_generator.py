import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from barberboost.models.employee_sales_data import EmployeeSalesData
from barberboost.models.merchant import Merchant
from barberboost.models.report import Report
from barberboost.models.report_pipeline_status import (
    STEP_FETCH, STEP_GENERATE,
    STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_COMPLETED,
)
from barberboost.services.errors import NotFoundError, PipelinePreconditionError
from barberboost.services.period_calculator import Period, period_local_dates
from barberboost.utils.datetime_utils import as_utc, isoformat_z, to_naive_utc, utcnow
from barberboost.utils.report_pdf import build_file_name

logger = logging.getLogger(__name__)

DEFAULT_REPORT_TYPE = 'daily_sales'


@dataclass
class ReportArtifact:
    merchant_id: str
    pipeline_date: date
    report_type: str
    file_name: str
    file_url: str
    period: Period
    totals: dict
    employees: list = field(default_factory=list)

    def to_dict(self):
        return {
            'merchantId': self.merchant_id,
            'pipelineDate': self.pipeline_date.isoformat(),
            'reportType': self.report_type,
            'fileName': self.file_name,
            'fileUrl': self.file_url,
            'period': self.period.to_dict(),
            'totals': {name: float(value) if isinstance(value, Decimal) else value
                       for name, value in self.totals.items()},
            'employees': [_serialise_row(row) for row in self.employees],
        }


def _serialise_row(row):
    return {name: float(value) if isinstance(value, Decimal) else value for name, value in row.items()}


def summarise_sales_rows(rows):
    """Collapse per-day rows into one line per employee, highest sales first."""
    by_employee = {}
    for row in rows:
        entry = by_employee.setdefault(row.employee_id, {
            'employee_id': row.employee_id,
            'employee_name': row.employee_name,
            'total_sales': Decimal('0.00'),
            'commission_amount': Decimal('0.00'),
            'order_count': 0,
        })
        entry['total_sales'] += Decimal(row.total_sales)
        entry['commission_amount'] += Decimal(row.commission_amount)
        entry['order_count'] += row.order_count or 0

    employees = sorted(by_employee.values(), key=lambda entry: entry['total_sales'], reverse=True)
    total_sales = sum((entry['total_sales'] for entry in employees), Decimal('0.00'))
    total_commission = sum((entry['commission_amount'] for entry in employees), Decimal('0.00'))
    totals = {
        'total_sales': total_sales,
        'total_commission': total_commission,
        'shop_commission': total_sales - total_commission,
        'employee_count': len(employees),
    }
    return employees, totals


class ReportGenerator:
    """
    Runs the ``generate`` pipeline step: requires a completed ``fetch`` and a
    pending ``generate`` for the same (merchant, pipeline_date), renders the
    sales of the fetched period, stores the artifact and advances the
    merchant's last completed cycle.
    """

    def __init__(self, session, ledger, renderer, storage, offset_provider,
                 report_type=DEFAULT_REPORT_TYPE):
        self.session = session
        self.ledger = ledger
        self.renderer = renderer
        self.storage = storage
        self.offset_provider = offset_provider
        self.report_type = report_type

    def _check_preconditions(self, merchant_id, pipeline_date):
        steps = self.ledger.get_steps_by_name(merchant_id, pipeline_date, [STEP_FETCH, STEP_GENERATE])
        fetch_step = steps.get(STEP_FETCH)
        generate_step = steps.get(STEP_GENERATE)
        details = {
            'fetchStatus': fetch_step.status if fetch_step else None,
            'generateStatus': generate_step.status if generate_step else None,
        }

        if fetch_step is None or fetch_step.status != STATUS_COMPLETED:
            raise PipelinePreconditionError('Data fetch not completed for this pipeline date', details=details)
        if generate_step is None or generate_step.status != STATUS_PENDING:
            raise PipelinePreconditionError('Report generation is not pending for this pipeline date', details=details)
        if fetch_step.data_period_start is None or fetch_step.data_period_end is None:
            raise PipelinePreconditionError('Fetch step has no recorded data period', details=details)

        return Period(start=as_utc(fetch_step.data_period_start), end=as_utc(fetch_step.data_period_end))

    def _load_sales_rows(self, merchant, period):
        start_date, end_date = period_local_dates(period, merchant.timezone, self.offset_provider)
        return self.session.query(EmployeeSalesData).filter(
            EmployeeSalesData.merchant_id == merchant.id,
            EmployeeSalesData.sales_date >= start_date,
            EmployeeSalesData.sales_date <= end_date
        ).all()

    def _store_report_record(self, merchant_id, report_date, file_name, file_url, report_data):
        record = self.session.query(Report).filter_by(
            merchant_id=merchant_id,
            report_date=report_date,
            report_type=self.report_type
        ).first()
        if record:
            record.file_name = file_name
            record.file_url = file_url
            record.report_data = report_data
            record.updated_at = utcnow()
        else:
            self.session.add(Report(
                merchant_id=merchant_id,
                report_date=report_date,
                report_type=self.report_type,
                file_name=file_name,
                file_url=file_url,
                report_data=report_data
            ))

    def _advance_last_completed(self, merchant, cycle_end):
        settings = merchant.settings
        if settings is None:
            logger.warning("Merchant %s has no settings row; last completed cycle not recorded", merchant.id)
            return
        cycle_end = to_naive_utc(cycle_end)
        current = settings.last_completed_report_cycle_time
        if current is None or current < cycle_end:
            settings.last_completed_report_cycle_time = cycle_end
            settings.updated_at = utcnow()

    def _build_artifact(self, merchant_id, pipeline_date, period):
        merchant = self.session.get(Merchant, merchant_id)
        if merchant is None:
            raise NotFoundError('Merchant not found')

        rows = self._load_sales_rows(merchant, period)
        employees, totals = summarise_sales_rows(rows)

        file_name = build_file_name(merchant.shop_name, pipeline_date, self.report_type, self.renderer.extension)
        body = self.renderer.render({
            'shop_name': merchant.shop_name,
            'period_start': period.start,
            'period_end': period.end,
            'employees': employees,
            'totals': totals,
        })
        file_url = self.storage.upload_report(merchant_id, file_name, body, self.renderer.content_type)

        artifact = ReportArtifact(
            merchant_id=merchant_id,
            pipeline_date=pipeline_date,
            report_type=self.report_type,
            file_name=file_name,
            file_url=file_url,
            period=period,
            totals=totals,
            employees=employees
        )
        report_data = {
            'periodStart': isoformat_z(period.start),
            'periodEnd': isoformat_z(period.end),
            'totals': artifact.to_dict()['totals'],
            'employees': [_serialise_row(row) for row in employees],
        }
        self._store_report_record(merchant_id, pipeline_date, file_name, file_url, report_data)
        return merchant, artifact

    def generate_report(self, merchant_id: str, pipeline_date: date) -> ReportArtifact:
        period = self._check_preconditions(merchant_id, pipeline_date)

        self.ledger.transition(
            merchant_id, pipeline_date, STEP_GENERATE,
            STATUS_PENDING, STATUS_IN_PROGRESS,
            started_at=utcnow(),
            error_message=None
        )
        self.session.commit()
        logger.info("Generating report for merchant %s, pipeline date %s", merchant_id, pipeline_date)

        try:
            merchant, artifact = self._build_artifact(merchant_id, pipeline_date, period)
            self.ledger.transition(
                merchant_id, pipeline_date, STEP_GENERATE,
                STATUS_IN_PROGRESS, STATUS_COMPLETED,
                completed_at=utcnow()
            )
            self._advance_last_completed(merchant, period.end)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.exception("Report generation failed for merchant %s on %s", merchant_id, pipeline_date)
            self.ledger.try_mark_failed(merchant_id, pipeline_date, STEP_GENERATE, str(e))
            self.session.commit()
            raise

        logger.info("Report %s generated for merchant %s", artifact.file_name, merchant_id)
        return artifact
