import logging

import requests

from barberboost.services.errors import UpstreamError

logger = logging.getLogger(__name__)


class CloverClient:
    """Thin wrapper over the Clover REST API (v3)."""

    def __init__(self, base_url='https://api.clover.com', timeout=30, page_size=1000, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.page_size = page_size
        self.http = session or requests.Session()

    def _get_elements(self, path, token, stage, params=None):
        elements = []
        offset = 0
        while True:
            page_params = list(params or [])
            page_params += [('limit', self.page_size), ('offset', offset)]
            try:
                response = self.http.get(
                    f"{self.base_url}{path}",
                    headers={
                        'Authorization': f"Bearer {token}",
                        'Content-Type': 'application/json',
                    },
                    params=page_params,
                    timeout=self.timeout
                )
            except requests.RequestException as e:
                raise UpstreamError(
                    f"Failed to fetch {stage} from Clover",
                    details={'stage': stage, 'details': str(e)}
                ) from e

            if not response.ok:
                logger.error("Clover %s request failed: %s %s", stage, response.status_code, response.text)
                raise UpstreamError(
                    f"Failed to fetch {stage} from Clover",
                    details={'stage': stage, 'status': response.status_code, 'details': response.text}
                )

            page = response.json().get('elements', [])
            elements.extend(page)
            if len(page) < self.page_size:
                return elements
            offset += self.page_size

    def get_employees(self, clover_merchant_id, token):
        return self._get_elements(
            f"/v3/merchants/{clover_merchant_id}/employees",
            token,
            stage='employees'
        )

    def get_orders(self, clover_merchant_id, token, start_ms, end_ms):
        """Orders created in ``[start_ms, end_ms)`` with line items and employee expanded."""
        params = [
            ('filter', f"createdTime>={start_ms}"),
            ('filter', f"createdTime<{end_ms}"),
            ('expand', 'lineItems,employee'),
        ]
        return self._get_elements(
            f"/v3/merchants/{clover_merchant_id}/orders",
            token,
            stage='orders',
            params=params
        )

    def get_merchant(self, clover_merchant_id, token):
        """The Clover merchant record (name, address, phone)."""
        try:
            response = self.http.get(
                f"{self.base_url}/v3/merchants/{clover_merchant_id}",
                headers={
                    'Authorization': f"Bearer {token}",
                    'Content-Type': 'application/json',
                },
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise UpstreamError(
                'Failed to fetch merchant from Clover',
                details={'stage': 'merchant', 'details': str(e)}
            ) from e

        if not response.ok:
            logger.error("Clover merchant request failed: %s %s", response.status_code, response.text)
            raise UpstreamError(
                'Failed to fetch merchant from Clover',
                details={'stage': 'merchant', 'status': response.status_code, 'details': response.text}
            )
        return response.json()
