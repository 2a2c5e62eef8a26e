import base64
import binascii
from collections import namedtuple

from barberboost.models.secure_credential import SecureCredential, CLOVER_MERCHANT_ID, CLOVER_API_TOKEN
from barberboost.services.errors import MissingCredentialsError

CloverCredentials = namedtuple('CloverCredentials', ['merchant_id', 'api_token'])


def decode_secret(encoded_value):
    # Stored values are base64, not encrypted. Anyone with table access can read them.
    try:
        return base64.b64decode(encoded_value.encode('ascii'), validate=True).decode('utf-8')
    except (binascii.Error, UnicodeError, ValueError, AttributeError):
        return None


def encode_secret(value):
    return base64.b64encode(value.encode('utf-8')).decode('ascii')


class CredentialStore:
    def __init__(self, session):
        self.session = session

    def get_clover_credentials(self, merchant_id):
        rows = self.session.query(SecureCredential).filter(
            SecureCredential.merchant_id == merchant_id,
            SecureCredential.credential_type.in_([CLOVER_MERCHANT_ID, CLOVER_API_TOKEN]),
            SecureCredential.is_active.is_(True)
        ).all()

        if len(rows) != 2:
            raise MissingCredentialsError()

        decoded = {row.credential_type: decode_secret(row.encrypted_value) for row in rows}
        clover_merchant_id = decoded.get(CLOVER_MERCHANT_ID)
        api_token = decoded.get(CLOVER_API_TOKEN)
        if not clover_merchant_id or not api_token:
            raise MissingCredentialsError('Failed to decrypt Clover credentials')

        return CloverCredentials(merchant_id=clover_merchant_id, api_token=api_token)
