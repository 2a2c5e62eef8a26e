import uuid
from barberboost.extensions import db
from barberboost.utils.datetime_utils import utcnow


class Report(db.Model):
    __tablename__ = "reports"
    __table_args__ = (
        db.UniqueConstraint("merchant_id", "report_date", "report_type", name="uq_merchant_report"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    merchant_id = db.Column(db.String(36), db.ForeignKey("merchants.id"), nullable=False)
    report_date = db.Column(db.Date, nullable=False)
    report_type = db.Column(db.String(50), nullable=False, default="daily_sales")
    file_name = db.Column(db.String(255), nullable=True)
    file_url = db.Column(db.Text, nullable=True)
    report_data = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

