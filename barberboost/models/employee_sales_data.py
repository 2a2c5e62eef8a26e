import uuid
from barberboost.extensions import db
from barberboost.utils.datetime_utils import utcnow


class EmployeeSalesData(db.Model):
    __tablename__ = "employee_sales_data"
    __table_args__ = (
        db.UniqueConstraint("merchant_id", "employee_id", "sales_date", name="uq_employee_sales_day"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    merchant_id = db.Column(db.String(36), db.ForeignKey("merchants.id"), nullable=False)
    employee_id = db.Column(db.String(100), nullable=False)
    employee_name = db.Column(db.String(255), nullable=False)
    sales_date = db.Column(db.Date, nullable=False)
    total_sales = db.Column(db.Numeric(precision=10, scale=2), nullable=False, default=0)
    commission_amount = db.Column(db.Numeric(precision=10, scale=2), nullable=False, default=0)
    commission_rate = db.Column(db.Numeric(precision=5, scale=2), nullable=False, default=0)
    order_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<EmployeeSalesData {self.merchant_id} {self.employee_id} {self.sales_date}>"

