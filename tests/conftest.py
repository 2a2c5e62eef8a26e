import uuid
from datetime import time

import pytest

from barberboost import create_app
from barberboost.config.config import TestingConfig
from barberboost.extensions import db
from barberboost.models.employee_commission import EmployeeCommission
from barberboost.models.merchant import Merchant, Profile
from barberboost.models.secure_credential import SecureCredential, CLOVER_MERCHANT_ID, CLOVER_API_TOKEN
from barberboost.models.settings import MerchantSettings
from barberboost.services.credential_store import encode_secret
from barberboost.services.errors import UpstreamError
from barberboost.services.registry import get_services


class FakeCloverClient:
    def __init__(self):
        self.employees = []
        self.orders = []
        self.calls = []
        self.fail_stage = None
        self.merchant_info = {'id': 'CLOVER-MID-1', 'name': 'Fade Factory Downtown',
                              'address': {'city': 'Austin'}, 'phoneNumber': '555-0100'}

    def get_employees(self, clover_merchant_id, token):
        self.calls.append(('employees', clover_merchant_id, token))
        if self.fail_stage == 'employees':
            raise UpstreamError('Failed to fetch employees from Clover', details={'stage': 'employees'})
        return list(self.employees)

    def get_merchant(self, clover_merchant_id, token):
        self.calls.append(('merchant', clover_merchant_id, token))
        if self.fail_stage == 'merchant':
            raise UpstreamError('Failed to fetch merchant from Clover', details={'stage': 'merchant'})
        return dict(self.merchant_info)

    def get_orders(self, clover_merchant_id, token, start_ms, end_ms):
        self.calls.append(('orders', clover_merchant_id, token, start_ms, end_ms))
        if self.fail_stage == 'orders':
            raise UpstreamError('Failed to fetch orders from Clover', details={'stage': 'orders'})
        return [order for order in self.orders if start_ms <= order['createdTime'] < end_ms]


class FakeEmailClient:
    def __init__(self):
        self.sent = []

    def send_email(self, sender, to, subject, html):
        self.sent.append({'from': sender, 'to': to, 'subject': subject, 'html': html})
        return f"email-{len(self.sent)}"


class FakeStorage:
    def __init__(self):
        self.uploads = []

    def upload_report(self, merchant_id, file_name, body, content_type='application/pdf'):
        self.uploads.append({
            'merchant_id': merchant_id,
            'file_name': file_name,
            'body': body,
            'content_type': content_type,
        })
        return f"https://storage.test/reports/{merchant_id}/{file_name}"


@pytest.fixture
def clover():
    return FakeCloverClient()


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def app(clover, email_client, storage):
    app = create_app(TestingConfig, clover_client=clover, email_client=email_client, storage=storage)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return get_services()


@pytest.fixture
def make_merchant(app):
    def _make_merchant(shop_name='Fade Factory', timezone='US/Eastern', report_time=time(6, 0),
                       commission_percentage=70, with_settings=True, with_credentials=True,
                       email='owner@fadefactory.test', first_name='Marcus', last_name='Reed',
                       commission_overrides=None):
        profile = Profile(id=str(uuid.uuid4()), email=email, first_name=first_name, last_name=last_name)
        merchant = Merchant(id=str(uuid.uuid4()), user_id=profile.id, shop_name=shop_name, timezone=timezone)
        db.session.add_all([profile, merchant])

        if with_settings:
            db.session.add(MerchantSettings(
                merchant_id=merchant.id,
                commission_percentage=commission_percentage,
                report_time_cycle=report_time
            ))

        if with_credentials:
            db.session.add_all([
                SecureCredential(merchant_id=merchant.id, credential_type=CLOVER_MERCHANT_ID,
                                 encrypted_value=encode_secret('CLOVER-MID-1')),
                SecureCredential(merchant_id=merchant.id, credential_type=CLOVER_API_TOKEN,
                                 encrypted_value=encode_secret('token-abc')),
            ])

        for employee_id, percentage in (commission_overrides or {}).items():
            db.session.add(EmployeeCommission(
                merchant_id=merchant.id,
                employee_id=employee_id,
                employee_name=employee_id,
                commission_percentage=percentage
            ))

        db.session.commit()
        return merchant

    return _make_merchant
