from datetime import date, datetime, time, timezone

import pytest

from barberboost.extensions import db
from barberboost.models.secure_credential import SecureCredential
from barberboost.services.period_calculator import FixedOffsetTable
from barberboost.services.report_scheduler import ReportScheduler
from barberboost.utils.datetime_utils import to_epoch_millis

UTC = timezone.utc
# 06:02 EDT
NOW = datetime(2024, 7, 15, 10, 2, tzinfo=UTC)


def seed_orders(clover):
    clover.employees = [{'id': 'E1', 'name': 'Jay'}, {'id': 'E2', 'name': 'Rico'}]
    clover.orders = [
        {'id': 'o1', 'employee': {'id': 'E1'}, 'total': 15000,
         'createdTime': to_epoch_millis(datetime(2024, 7, 14, 20, 0, tzinfo=UTC))},
        {'id': 'o2', 'employee': {'id': 'E2'}, 'total': 4000,
         'createdTime': to_epoch_millis(datetime(2024, 7, 15, 1, 0, tzinfo=UTC))},
    ]


def scheduler_with(policy, tolerance=5):
    return ReportScheduler(None, None, None, FixedOffsetTable(), due_policy=policy, tolerance_minutes=tolerance)


def test_due_merchant_runs_full_cycle(services, clover, storage, make_merchant):
    merchant = make_merchant()
    seed_orders(clover)

    result = services.scheduler.run(NOW)

    assert result['success'] is True
    assert result['processedReports'] == 1
    assert result['timestamp'] == '2024-07-15T10:02:00Z'
    entry = result['results'][0]
    assert entry['merchantId'] == merchant.id
    assert entry['merchantName'] == 'Fade Factory'
    assert entry['outcome'] == 'completed'
    assert entry['success'] is True
    assert entry['period'] == {'start': '2024-07-14T10:00:00Z', 'end': '2024-07-15T10:00:00Z'}

    steps = services.ledger.get_steps_by_name(merchant.id, date(2024, 7, 15), ['schedule', 'fetch', 'generate'])
    assert {name: step.status for name, step in steps.items()} == {
        'schedule': 'completed', 'fetch': 'completed', 'generate': 'completed'
    }
    assert merchant.settings.last_completed_report_cycle_time == datetime(2024, 7, 15, 10, 0)
    assert len(storage.uploads) == 1


def test_second_run_for_same_cycle_is_skipped(services, clover, storage, make_merchant):
    make_merchant()
    seed_orders(clover)
    services.scheduler.run(NOW)

    result = services.scheduler.run(datetime(2024, 7, 15, 10, 4, tzinfo=UTC))

    assert result['results'][0]['outcome'] == 'skipped'
    assert result['results'][0]['success'] is True
    assert len(storage.uploads) == 1


def test_merchants_not_due_are_left_alone(services, make_merchant):
    make_merchant(report_time=time(21, 0))

    result = services.scheduler.run(NOW)

    assert result == {
        'success': True,
        'processedReports': 0,
        'timestamp': '2024-07-15T10:02:00Z',
        'results': [],
    }


def test_failure_is_recorded_and_scan_continues(services, clover, make_merchant):
    broken = make_merchant(shop_name='No Keys Cuts', with_credentials=False)
    healthy = make_merchant(shop_name='Sharp Lines')
    seed_orders(clover)

    result = services.scheduler.run(NOW)

    assert result['success'] is True
    outcomes = {entry['merchantId']: entry for entry in result['results']}
    assert outcomes[broken.id]['outcome'] == 'failed'
    assert outcomes[broken.id]['success'] is False
    assert 'Clover credentials not found' in outcomes[broken.id]['error']
    assert outcomes[healthy.id]['outcome'] == 'completed'

    fetch_step = services.ledger.get_step(broken.id, date(2024, 7, 15), 'fetch')
    assert fetch_step.status == 'failed'
    assert fetch_step.retry_count == 1
    assert broken.settings.last_completed_report_cycle_time is None


def test_failed_cycle_is_retried_on_next_run(services, clover, make_merchant):
    merchant = make_merchant(with_credentials=False)
    seed_orders(clover)
    services.scheduler.run(NOW)

    for credential_type, value in (('clover_merchant_id', 'Q0xPVkVSLU1JRC0x'), ('clover_api_token', 'dG9rZW4tYWJj')):
        db.session.add(SecureCredential(merchant_id=merchant.id, credential_type=credential_type,
                                        encrypted_value=value))
    db.session.commit()

    result = services.scheduler.run(datetime(2024, 7, 15, 10, 3, tzinfo=UTC))

    assert result['results'][0]['outcome'] == 'completed'
    assert services.ledger.get_step(merchant.id, date(2024, 7, 15), 'fetch').retry_count == 1


def test_completed_reports_can_be_emailed(services, clover, email_client, make_merchant):
    make_merchant()
    seed_orders(clover)
    services.scheduler.send_emails = True

    result = services.scheduler.run(NOW)

    assert result['results'][0]['email'] == {'emailId': 'email-1', 'sentTo': 'owner@fadefactory.test'}
    assert email_client.sent[0]['subject'] == 'Commission Report - Fade Factory (07/14/2024 10:00 - 07/15/2024 10:00)'


def test_tolerance_policy():
    scheduler = scheduler_with('tolerance', tolerance=5)

    assert scheduler.is_due('06:00:00', 'US/Eastern', datetime(2024, 7, 15, 10, 5, tzinfo=UTC))
    assert scheduler.is_due('06:00:00', 'US/Eastern', datetime(2024, 7, 15, 9, 57, tzinfo=UTC))
    assert not scheduler.is_due('06:00:00', 'US/Eastern', datetime(2024, 7, 15, 10, 6, tzinfo=UTC))


def test_tolerance_wraps_around_midnight():
    scheduler = scheduler_with('tolerance', tolerance=5)

    # 00:01 EDT
    assert scheduler.is_due('23:58:00', 'US/Eastern', datetime(2024, 7, 15, 4, 1, tzinfo=UTC))


def test_exact_policy():
    scheduler = scheduler_with('exact')

    assert scheduler.is_due('06:00:00', 'US/Eastern', datetime(2024, 7, 15, 10, 0, tzinfo=UTC))
    assert not scheduler.is_due('06:00:00', 'US/Eastern', datetime(2024, 7, 15, 10, 0, 1, tzinfo=UTC))


def test_unknown_policy_is_rejected():
    with pytest.raises(ValueError):
        scheduler_with('whenever')


def test_daily_sales_sync_reports_partial_failures(services, clover, make_merchant):
    make_merchant(shop_name='Sharp Lines')
    make_merchant(shop_name='No Keys Cuts', with_credentials=False)
    seed_orders(clover)

    result = services.scheduler.sync_daily_sales(now=NOW)

    assert result['success'] is True
    assert result['message'] == 'Sales sync completed. 1 successful, 1 failed'
    by_name = {entry['merchantName']: entry for entry in result['results']}
    assert by_name['Sharp Lines']['salesData']['summary']['totalSales'] == 190.0
    assert by_name['No Keys Cuts']['success'] is False
