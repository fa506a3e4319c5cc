"""Presigned S3 uploads for merchant logos."""

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from stacks.config import Settings
from stacks.core.exceptions import StoreFailure

logger = structlog.get_logger(__name__)


class UploadSigner:
    """Creates short-lived presigned PUT URLs in the configured bucket."""

    def __init__(self, settings: Settings):
        self.bucket = settings.S3_BUCKET_NAME
        self.region_name = settings.AWS_REGION
        self.expires_in = settings.S3_SIGNED_URL_EXPIRE_SECONDS
        self._client = None
        self.logger = logger.bind(service="upload_signer")

    def _get_client(self):
        """Get or create the boto3 S3 client.

        Credentials come from the standard boto3 locations (environment
        variables, ~/.aws/credentials, instance role).
        """
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region_name)
        return self._client

    def public_url(self, file_name: str) -> str:
        return f"https://{self.bucket}.s3.amazonaws.com/{file_name}"

    def sign_upload(self, file_name: str, file_type: str) -> dict:
        """Presign a public-read PUT of ``file_name``.

        Returns:
            dict with ``signed_request`` (the PUT URL) and ``url`` (where
            the object will be readable)

        Raises:
            StoreFailure: Uploads are not configured or signing failed
        """
        if not self.bucket:
            self.logger.error("upload_bucket_not_configured")
            raise StoreFailure()

        params = {
            "Bucket": self.bucket,
            "Key": file_name,
            "ContentType": file_type,
            "ACL": "public-read",
        }
        try:
            signed = self._get_client().generate_presigned_url(
                "put_object",
                Params=params,
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            self.logger.error("upload_signing_failed", key=file_name, error=str(e), exc_info=True)
            raise StoreFailure() from e

        self.logger.info("upload_signed", key=file_name)
        return {"signed_request": signed, "url": self.public_url(file_name)}
