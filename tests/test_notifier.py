import uuid
from unittest.mock import Mock

import pytest

from barberboost.extensions import db
from barberboost.services.errors import NotFoundError, UpstreamError, ValidationError
from barberboost.services.notifier import format_date_range
from barberboost.services.resend_client import ResendClient

SALES = [
    {'employee_name': 'Jay', 'total_sales': 100.0, 'commission_amount': 70.0},
    {'employee_name': 'Rico', 'total_sales': 250.5, 'commission_amount': 175.35},
    {'employee_name': 'Sam', 'total_sales': 0, 'commission_amount': 0},
]
DATE_RANGE = {'from': '2024-07-15T10:00:00Z', 'to': '2024-07-16T10:00:00Z'}


def test_sends_sorted_breakdown_to_account_owner(services, email_client, make_merchant):
    merchant = make_merchant()

    result = services.notifier.send_report_email(merchant.id, SALES, DATE_RANGE)

    assert result == {'emailId': 'email-1', 'sentTo': 'owner@fadefactory.test'}
    sent = email_client.sent[0]
    assert sent['to'] == ['owner@fadefactory.test']
    assert sent['from'] == 'Clover Barber Boost <onboarding@resend.dev>'
    assert sent['subject'] == 'Commission Report - Fade Factory (07/15/2024 10:00 - 07/16/2024 10:00)'

    html = sent['html']
    assert 'Hello Marcus Reed!' in html
    assert '$350.50' in html
    assert '$245.35' in html
    assert html.index('Rico') < html.index('Jay') < html.index('Sam')


def test_greeting_falls_back_to_email(services, email_client, make_merchant):
    merchant = make_merchant(first_name=None, last_name=None)

    services.notifier.send_report_email(merchant.id, SALES, DATE_RANGE)

    assert 'Hello owner@fadefactory.test!' in email_client.sent[0]['html']


def test_single_instant_range():
    assert format_date_range({'from': '2024-07-15T10:00:00Z', 'to': '2024-07-15T10:00:00Z'}) == '07/15/2024 10:00'


def test_missing_date_range_is_rejected():
    with pytest.raises(ValidationError):
        format_date_range({'from': '2024-07-15T10:00:00Z'})


def test_unknown_merchant(services):
    with pytest.raises(NotFoundError) as excinfo:
        services.notifier.send_report_email('6f1c1e0e-1111-4a2b-9c3d-111111111111', SALES, DATE_RANGE)

    assert excinfo.value.message == 'Merchant not found'


def test_missing_profile(services, make_merchant):
    merchant = make_merchant()
    merchant.user_id = str(uuid.uuid4())
    db.session.commit()

    with pytest.raises(NotFoundError) as excinfo:
        services.notifier.send_report_email(merchant.id, SALES, DATE_RANGE)

    assert excinfo.value.message == 'User profile not found'


def test_missing_profile_email(services, email_client, make_merchant):
    merchant = make_merchant(email=None)

    with pytest.raises(ValidationError) as excinfo:
        services.notifier.send_report_email(merchant.id, SALES, DATE_RANGE)

    assert excinfo.value.message == 'User email not found'
    assert excinfo.value.status_code == 400
    assert email_client.sent == []


def test_resend_error_carries_provider_detail():
    http = Mock()
    http.post.return_value = Mock(
        ok=False, status_code=422,
        json=Mock(return_value={'name': 'validation_error', 'message': 'Invalid `to` field'})
    )
    client = ResendClient('re_test', session=http)

    with pytest.raises(UpstreamError) as excinfo:
        client.send_email('Sender <a@b.test>', ['owner@x.test'], 'Subject', '<p>hi</p>')

    assert excinfo.value.details['provider'] == 'resend'
    assert excinfo.value.details['details']['name'] == 'validation_error'


def test_resend_success_returns_message_id():
    http = Mock()
    http.post.return_value = Mock(ok=True, status_code=200, json=Mock(return_value={'id': 'msg_123'}))
    client = ResendClient('re_test', api_url='https://resend.test', session=http)

    assert client.send_email('Sender <a@b.test>', ['owner@x.test'], 'Subject', '<p>hi</p>') == 'msg_123'
    assert http.post.call_args.args[0] == 'https://resend.test/emails'
    assert http.post.call_args.kwargs['json']['to'] == ['owner@x.test']
