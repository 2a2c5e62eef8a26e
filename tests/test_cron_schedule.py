from datetime import datetime, time, timezone
from types import SimpleNamespace

import pytest

from barberboost.services.cron_schedule import cron_expression, next_run_time, step_cron_expressions
from barberboost.services.errors import NotFoundError, ValidationError
from barberboost.services.period_calculator import FixedOffsetTable

UTC = timezone.utc
WINTER = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)
SUMMER = datetime(2024, 7, 15, 12, 0, tzinfo=UTC)


def test_cron_expression_follows_offset():
    offsets = FixedOffsetTable()

    assert cron_expression('21:00:00', 'US/Eastern', WINTER, offsets) == '0 2 * * *'
    assert cron_expression('21:00:00', 'US/Eastern', SUMMER, offsets) == '0 1 * * *'
    assert cron_expression('06:30', 'US/Hawaii', SUMMER, offsets) == '30 16 * * *'


def test_step_expressions_apply_delays():
    settings = SimpleNamespace(report_time_cycle=time(23, 59), fetch_delay_minutes=1, report_delay_minutes=2)

    expressions = step_cron_expressions(settings, 'US/Pacific', WINTER, FixedOffsetTable())

    assert expressions == {'schedule': '59 7 * * *', 'fetch': '0 8 * * *', 'generate': '1 8 * * *'}


def test_next_run_time():
    offsets = FixedOffsetTable()

    # 08:00 EDT, report at 21:00 today
    assert next_run_time('21:00:00', 'US/Eastern', SUMMER, offsets) == datetime(2024, 7, 16, 1, 0, tzinfo=UTC)
    # 22:00 EDT, already passed today
    assert next_run_time('21:00:00', 'US/Eastern', datetime(2024, 7, 16, 2, 0, tzinfo=UTC), offsets) == \
        datetime(2024, 7, 17, 1, 0, tzinfo=UTC)


def test_status_describes_merchant_schedule(services, make_merchant):
    merchant = make_merchant(report_time=time(21, 0))

    result = services.cron.handle('status', merchant_id=merchant.id, now=SUMMER)

    status = result['status']
    assert status['cronExpression'] == '0 1 * * *'
    assert status['stepCronExpressions']['generate'] == '2 1 * * *'
    assert status['nextRunTime'] == '2024-07-16T01:00:00Z'
    assert status['lastCompletedRun'] is None
    assert status['reportTime'] == '21:00:00'
    assert status['timezone'] == 'US/Eastern'
    assert status['shopName'] == 'Fade Factory'


def test_setup_all_aggregates_merchants(services, make_merchant):
    make_merchant(shop_name='Sharp Lines')
    make_merchant(shop_name='Fresh Cuts', timezone='US/Central')
    make_merchant(shop_name='No Settings', with_settings=False)

    result = services.cron.handle('setup_all', now=WINTER)

    assert result['message'] == 'Cron job setup completed. 2 successful, 0 failed'
    assert {entry['merchantName']: entry['cronExpression'] for entry in result['results']} == {
        'Sharp Lines': '0 11 * * *',
        'Fresh Cuts': '0 12 * * *',
    }


def test_status_for_unknown_merchant(services):
    with pytest.raises(NotFoundError):
        services.cron.handle('status', merchant_id='6f1c1e0e-1111-4a2b-9c3d-111111111111')


@pytest.mark.parametrize('action', ['create', 'explode', None])
def test_unsupported_actions(services, action):
    with pytest.raises(ValidationError):
        services.cron.handle(action, merchant_id='6f1c1e0e-1111-4a2b-9c3d-111111111111')
