import logging

import requests

from barberboost.services.errors import PipelineError, UpstreamError

logger = logging.getLogger(__name__)


class ResendClient:
    def __init__(self, api_key, api_url='https://api.resend.com', timeout=30, session=None):
        self.api_key = api_key
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.http = session or requests.Session()

    def send_email(self, sender, to, subject, html):
        """Send one email. Returns the provider's message id."""
        if not self.api_key:
            raise PipelineError('Email service is not configured', code='EMAIL_NOT_CONFIGURED')

        try:
            response = self.http.post(
                f"{self.api_url}/emails",
                headers={
                    'Authorization': f"Bearer {self.api_key}",
                    'Content-Type': 'application/json',
                },
                json={'from': sender, 'to': list(to), 'subject': subject, 'html': html},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise UpstreamError('Failed to send email', details={'provider': 'resend', 'details': str(e)}) from e

        try:
            payload = response.json()
        except ValueError:
            payload = {'message': response.text}

        if not response.ok:
            logger.error("Resend rejected email to %s: %s %s", to, response.status_code, payload)
            raise UpstreamError(
                'Failed to send email',
                details={'provider': 'resend', 'status': response.status_code, 'details': payload}
            )

        return payload.get('id')
