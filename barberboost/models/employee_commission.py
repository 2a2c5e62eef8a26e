import uuid
from barberboost.extensions import db
from barberboost.utils.datetime_utils import utcnow


class EmployeeCommission(db.Model):
    __tablename__ = "employee_commissions"
    __table_args__ = (
        db.UniqueConstraint("merchant_id", "employee_id", name="uq_employee_commission"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    merchant_id = db.Column(db.String(36), db.ForeignKey("merchants.id"), nullable=False)
    employee_id = db.Column(db.String(100), nullable=False)
    employee_name = db.Column(db.String(255), nullable=False)
    commission_percentage = db.Column(db.Numeric(precision=5, scale=2), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
