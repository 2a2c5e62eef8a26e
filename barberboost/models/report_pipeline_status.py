import uuid
from barberboost.extensions import db
from barberboost.utils.datetime_utils import utcnow

STEP_SCHEDULE = "schedule"
STEP_FETCH = "fetch"
STEP_GENERATE = "generate"
PIPELINE_STEPS = (STEP_SCHEDULE, STEP_FETCH, STEP_GENERATE)

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
PIPELINE_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_FAILED)


class PipelineStatus(db.Model):
    __tablename__ = "report_pipeline_status"
    __table_args__ = (
        db.UniqueConstraint("merchant_id", "pipeline_date", "step_name", name="uq_pipeline_step"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    merchant_id = db.Column(db.String(36), db.ForeignKey("merchants.id"), nullable=False)
    pipeline_date = db.Column(db.Date, nullable=False)
    step_name = db.Column(db.Enum(*PIPELINE_STEPS, name="pipeline_step"), nullable=False)
    status = db.Column(db.Enum(*PIPELINE_STATUSES, name="pipeline_step_status"), nullable=False, default=STATUS_PENDING)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    error_message = db.Column(db.Text, nullable=True)
    retry_count = db.Column(db.Integer, nullable=False, default=0)
    data_period_start = db.Column(db.DateTime, nullable=True)
    data_period_end = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<PipelineStatus {self.merchant_id} {self.pipeline_date} {self.step_name}={self.status}>"

    def to_dict(self):
        return {
            "merchant_id": self.merchant_id,
            "pipeline_date": self.pipeline_date.isoformat(),
            "step_name": self.step_name,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error_message": self.error_message,
            "retry_count": self.retry_count,
            "data_period_start": self.data_period_start.isoformat() if self.data_period_start else None,
            "data_period_end": self.data_period_end.isoformat() if self.data_period_end else None,
        }
