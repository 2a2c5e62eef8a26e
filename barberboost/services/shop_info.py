import logging

from barberboost.models.merchant import Merchant
from barberboost.services.errors import MissingCredentialsError, NotFoundError, UpstreamError, ValidationError
from barberboost.utils.validation import is_valid_uuid

logger = logging.getLogger(__name__)


class ShopInfoService:
    """
    Looks up a merchant's shop details on Clover. Credential or Clover
    failures still answer with the locally stored shop name.
    """

    def __init__(self, session, credential_store, clover_client):
        self.session = session
        self.credential_store = credential_store
        self.clover_client = clover_client

    def get_shop_info(self, merchant_id):
        if not is_valid_uuid(merchant_id):
            raise ValidationError('Invalid merchant ID format')
        merchant = self.session.get(Merchant, merchant_id)
        if merchant is None:
            raise NotFoundError('Merchant not found')

        try:
            credentials = self.credential_store.get_clover_credentials(merchant_id)
        except MissingCredentialsError as e:
            logger.warning("Shop info for merchant %s without usable credentials: %s", merchant_id, e.message)
            return {'success': False, 'error': e.message, 'shopName': merchant.shop_name}

        try:
            info = self.clover_client.get_merchant(credentials.merchant_id, credentials.api_token)
        except UpstreamError as e:
            logger.warning("Clover merchant lookup failed for merchant %s: %s", merchant_id, e.details)
            return {'success': False, 'error': 'Failed to fetch from Clover API', 'shopName': merchant.shop_name}

        return {
            'success': True,
            'shopName': info.get('name') or merchant.shop_name,
            'merchantInfo': {
                'id': info.get('id'),
                'name': info.get('name'),
                'address': info.get('address'),
                'phoneNumber': info.get('phoneNumber'),
            },
        }
