import logging

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class S3Client:
    """Stores rendered report artifacts in the configured bucket."""

    def __init__(self):
        self.client = None
        self.bucket = None
        self.prefix = 'reports'
        self.region = None

    def init_app(self, app):
        self.bucket = app.config.get('S3_BUCKET')
        self.prefix = app.config.get('REPORTS_S3_PREFIX', 'reports')
        self.region = app.config.get('AWS_REGION')
        if not self.bucket:
            logger.info("S3_BUCKET not configured; report artifacts will not be uploaded")
            return
        self.client = boto3.client(
            's3',
            aws_access_key_id=app.config['AWS_ACCESS_KEY_ID'],
            aws_secret_access_key=app.config['AWS_SECRET_ACCESS_KEY'],
            region_name=self.region
        )

    @property
    def enabled(self):
        return self.client is not None and bool(self.bucket)

    def object_url(self, key):
        if self.region:
            return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def upload_report(self, merchant_id, file_name, body, content_type='application/pdf'):
        """Upload an artifact under ``{prefix}/{merchant_id}/{file_name}``.

        Returns the object URL, or None when storage is disabled or the upload
        fails. A failed upload does not fail report generation.
        """
        if not self.enabled:
            return None

        key = f"{self.prefix}/{merchant_id}/{file_name}"
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type
            )
        except ClientError:
            logger.exception("Failed to upload report %s to S3", key)
            return None
        return self.object_url(key)
