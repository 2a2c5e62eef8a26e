import logging
from datetime import date, datetime

from barberboost.models.report_pipeline_status import (
    PipelineStatus, PIPELINE_STEPS, PIPELINE_STATUSES,
    STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_FAILED,
)
from barberboost.services.errors import StepConflictError
from barberboost.utils.datetime_utils import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

_DATETIME_FIELDS = ('started_at', 'completed_at', 'data_period_start', 'data_period_end')
_UPDATABLE_FIELDS = _DATETIME_FIELDS + ('error_message', 'retry_count')


def _validate(step_name, status=None):
    if step_name not in PIPELINE_STEPS:
        raise ValueError(f"Invalid pipeline step: {step_name}")
    if status is not None and status not in PIPELINE_STATUSES:
        raise ValueError(f"Invalid pipeline status: {status}")


def _normalise_fields(fields):
    values = {}
    for name, value in fields.items():
        if name not in _UPDATABLE_FIELDS:
            raise ValueError(f"Unknown pipeline status field: {name}")
        if name in _DATETIME_FIELDS and isinstance(value, datetime):
            value = to_naive_utc(value)
        values[name] = value
    return values


class PipelineLedger:
    """
    Persisted per-(merchant, pipeline_date, step) state machine.

    The ledger only stages changes on the session; callers commit each
    logical unit of work themselves.
    """

    def __init__(self, session):
        self.session = session

    def get_step(self, merchant_id: str, pipeline_date: date, step_name: str):
        _validate(step_name)
        return self.session.query(PipelineStatus).filter_by(
            merchant_id=merchant_id,
            pipeline_date=pipeline_date,
            step_name=step_name
        ).first()

    def get_steps(self, merchant_id: str, pipeline_date: date, step_names):
        for step_name in step_names:
            _validate(step_name)
        return self.session.query(PipelineStatus).filter(
            PipelineStatus.merchant_id == merchant_id,
            PipelineStatus.pipeline_date == pipeline_date,
            PipelineStatus.step_name.in_(list(step_names))
        ).all()

    def get_steps_by_name(self, merchant_id: str, pipeline_date: date, step_names):
        return {
            step.step_name: step
            for step in self.get_steps(merchant_id, pipeline_date, step_names)
        }

    def upsert_step(self, merchant_id: str, pipeline_date: date, step_name: str, status: str, **fields):
        """Insert or overwrite the step row. ``retry_count`` is only changed when passed."""
        _validate(step_name, status)
        values = _normalise_fields(fields)

        existing = self.get_step(merchant_id, pipeline_date, step_name)
        if existing:
            existing.status = status
            for name, value in values.items():
                setattr(existing, name, value)
            existing.updated_at = utcnow()
            step = existing
        else:
            step = PipelineStatus(
                merchant_id=merchant_id,
                pipeline_date=pipeline_date,
                step_name=step_name,
                status=status,
                **values
            )
            self.session.add(step)

        self.session.flush()
        logger.debug("Upserted %s step for merchant %s on %s: %s", step_name, merchant_id, pipeline_date, status)
        return step

    def transition(self, merchant_id: str, pipeline_date: date, step_name: str,
                   expected_status: str, new_status: str, **fields):
        """
        Move a step from ``expected_status`` to ``new_status`` with a single
        conditional UPDATE. Raises StepConflictError if no row matched, which
        means the step is missing or another invocation already moved it.
        """
        _validate(step_name, expected_status)
        _validate(step_name, new_status)
        values = _normalise_fields(fields)
        values['status'] = new_status
        values['updated_at'] = utcnow()

        updated = self.session.query(PipelineStatus).filter(
            PipelineStatus.merchant_id == merchant_id,
            PipelineStatus.pipeline_date == pipeline_date,
            PipelineStatus.step_name == step_name,
            PipelineStatus.status == expected_status
        ).update(values, synchronize_session='fetch')

        if updated != 1:
            current = self.get_step(merchant_id, pipeline_date, step_name)
            raise StepConflictError(
                f"Cannot move {step_name} step from {expected_status} to {new_status}",
                details={
                    'step': step_name,
                    'expectedStatus': expected_status,
                    'currentStatus': current.status if current else None,
                }
            )

        self.session.flush()
        logger.info("Pipeline step %s for merchant %s on %s: %s -> %s",
                    step_name, merchant_id, pipeline_date, expected_status, new_status)
        return self.get_step(merchant_id, pipeline_date, step_name)

    def mark_failed(self, merchant_id: str, pipeline_date: date, step_name: str, error_message: str):
        """Record a failed in-progress step and bump its retry counter."""
        step = self.get_step(merchant_id, pipeline_date, step_name)
        retry_count = (step.retry_count or 0) + 1 if step else 1
        return self.transition(
            merchant_id, pipeline_date, step_name,
            STATUS_IN_PROGRESS, STATUS_FAILED,
            error_message=error_message,
            retry_count=retry_count,
            completed_at=utcnow()
        )

    def queue_step(self, merchant_id: str, pipeline_date: date, step_name: str, **fields):
        """
        Put a step back to ``pending`` unless another invocation is running it.
        An existing row is only reset by a conditional UPDATE that excludes
        ``in_progress``; StepConflictError is raised otherwise.
        """
        _validate(step_name)
        values = _normalise_fields(fields)

        existing = self.get_step(merchant_id, pipeline_date, step_name)
        if existing is None:
            return self.upsert_step(merchant_id, pipeline_date, step_name, STATUS_PENDING, **fields)

        values['status'] = STATUS_PENDING
        values['updated_at'] = utcnow()
        updated = self.session.query(PipelineStatus).filter(
            PipelineStatus.merchant_id == merchant_id,
            PipelineStatus.pipeline_date == pipeline_date,
            PipelineStatus.step_name == step_name,
            PipelineStatus.status != STATUS_IN_PROGRESS
        ).update(values, synchronize_session='fetch')

        if updated != 1:
            raise StepConflictError(
                f"Cannot queue {step_name} step while it is in progress",
                details={'step': step_name, 'currentStatus': STATUS_IN_PROGRESS}
            )

        self.session.flush()
        logger.info("Queued %s step for merchant %s on %s", step_name, merchant_id, pipeline_date)
        return self.get_step(merchant_id, pipeline_date, step_name)

    def try_mark_failed(self, merchant_id: str, pipeline_date: date, step_name: str, error_message: str):
        """``mark_failed`` that returns None when another run already moved the step."""
        try:
            return self.mark_failed(merchant_id, pipeline_date, step_name, error_message)
        except StepConflictError:
            logger.warning("Could not mark %s step failed for merchant %s on %s; it was moved by another run",
                           step_name, merchant_id, pipeline_date)
            return None
