import uuid
from barberboost.extensions import db
from barberboost.utils.datetime_utils import utcnow

TIMEZONES = ("US/Eastern", "US/Central", "US/Mountain", "US/Pacific", "US/Alaska", "US/Hawaii")


class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(255), nullable=True)
    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    role = db.Column(db.Enum("merchant", "admin", name="user_role"), nullable=False, default="merchant")
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    @property
    def display_name(self):
        if self.first_name:
            return f"{self.first_name} {self.last_name or ''}".strip()
        return self.email


class Merchant(db.Model):
    __tablename__ = "merchants"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=False)
    shop_name = db.Column(db.String(255), nullable=False)
    timezone = db.Column(db.Enum(*TIMEZONES, name="merchant_timezone"), nullable=False, default="US/Eastern")
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    profile = db.relationship("Profile", backref="merchants")
    settings = db.relationship("MerchantSettings", back_populates="merchant", uselist=False)

    def __repr__(self):
        return f"<Merchant {self.id} {self.shop_name}>"
