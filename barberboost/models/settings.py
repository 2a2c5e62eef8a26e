import uuid
from datetime import time
from barberboost.extensions import db
from barberboost.utils.datetime_utils import utcnow


class MerchantSettings(db.Model):
    __tablename__ = "settings"
    __table_args__ = (
        db.CheckConstraint("commission_percentage >= 0 AND commission_percentage <= 100", name="settings_commission_range"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    merchant_id = db.Column(db.String(36), db.ForeignKey("merchants.id"), unique=True, nullable=False)
    commission_percentage = db.Column(db.Numeric(precision=5, scale=2), nullable=False, default=70)
    report_time_cycle = db.Column(db.Time, nullable=False, default=time(21, 0, 0))
    # Naive UTC; never moves backwards.
    last_completed_report_cycle_time = db.Column(db.DateTime, nullable=True)
    fetch_delay_minutes = db.Column(db.Integer, nullable=False, default=1)
    report_delay_minutes = db.Column(db.Integer, nullable=False, default=2)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    merchant = db.relationship("Merchant", back_populates="settings")

