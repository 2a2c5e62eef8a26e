import uuid
from barberboost.extensions import db
from barberboost.utils.datetime_utils import utcnow

CLOVER_MERCHANT_ID = "clover_merchant_id"
CLOVER_API_TOKEN = "clover_api_token"


class SecureCredential(db.Model):
    __tablename__ = "secure_credentials"
    __table_args__ = (
        db.UniqueConstraint("merchant_id", "credential_type", name="uq_merchant_credential"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    merchant_id = db.Column(db.String(36), db.ForeignKey("merchants.id"), nullable=False)
    credential_type = db.Column(db.String(50), nullable=False)
    encrypted_value = db.Column(db.Text, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
