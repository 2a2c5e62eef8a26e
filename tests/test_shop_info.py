import pytest

from barberboost.services.errors import NotFoundError, ValidationError


def test_returns_clover_details(services, clover, make_merchant):
    merchant = make_merchant()

    info = services.shop_info.get_shop_info(merchant.id)

    assert info['success'] is True
    assert info['shopName'] == 'Fade Factory Downtown'
    assert info['merchantInfo'] == {
        'id': 'CLOVER-MID-1',
        'name': 'Fade Factory Downtown',
        'address': {'city': 'Austin'},
        'phoneNumber': '555-0100',
    }
    assert clover.calls == [('merchant', 'CLOVER-MID-1', 'token-abc')]


def test_unnamed_clover_merchant_keeps_local_name(services, clover, make_merchant):
    merchant = make_merchant()
    clover.merchant_info = {'id': 'CLOVER-MID-1'}

    info = services.shop_info.get_shop_info(merchant.id)

    assert info['shopName'] == 'Fade Factory'


def test_missing_credentials_fall_back_to_local_name(services, clover, make_merchant):
    merchant = make_merchant(with_credentials=False)

    info = services.shop_info.get_shop_info(merchant.id)

    assert info['success'] is False
    assert info['shopName'] == 'Fade Factory'
    assert 'credentials' in info['error']
    assert clover.calls == []


def test_clover_failure_falls_back_to_local_name(services, clover, make_merchant):
    merchant = make_merchant()
    clover.fail_stage = 'merchant'

    info = services.shop_info.get_shop_info(merchant.id)

    assert info == {'success': False, 'error': 'Failed to fetch from Clover API', 'shopName': 'Fade Factory'}


def test_unknown_merchant(services):
    with pytest.raises(NotFoundError):
        services.shop_info.get_shop_info('6f1c1e0e-1111-4a2b-9c3d-111111111111')


def test_malformed_merchant_id(services):
    with pytest.raises(ValidationError):
        services.shop_info.get_shop_info('not-a-uuid')
