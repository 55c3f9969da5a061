"""S3-compatible object store provider.

Objects are written with ``upload_file`` under the generated key and, when
``public_read`` is on, with the ``public-read`` canned ACL.  The public URL
is either ``<public_base_url>/<key>`` (CDN or custom domain) or the
virtual-hosted S3 URL for the bucket.
"""
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from app.errors import RemoteUploadError

from .provider import ObjectStoreProvider
from .schemas import RemoteObject

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"


class S3ObjectStore(ObjectStoreProvider):
    """Object store backed by Amazon S3 (or any S3-compatible endpoint).

    Args:
        bucket:                Destination bucket.
        region_name:           AWS region.  Defaults to ``us-east-1``.
        endpoint_url:          Custom endpoint for S3-compatible services.
        public_base_url:       Base URL objects are served from, if not S3 itself.
        public_read:           Request the ``public-read`` ACL on upload.
        aws_access_key_id:     AWS access key.  ``None`` → default credential chain.
        aws_secret_access_key: AWS secret access key.
        aws_session_token:     Optional temporary-credential session token.
    """

    def __init__(
        self,
        bucket: str,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        public_read: bool = True,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        aws_session_token: Optional[str] = None,
    ) -> None:
        self._bucket = bucket
        self._region = region_name or DEFAULT_REGION
        self._endpoint_url = endpoint_url
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self._public_read = public_read
        self._access_key = aws_access_key_id
        self._secret_key = aws_secret_access_key
        self._session_token = aws_session_token
        self._client: Optional[object] = None

    @property
    def name(self) -> str:
        return "s3"

    @property
    def bucket(self) -> str:
        return self._bucket

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _get_client(self) -> object:
        """Return a cached boto3 s3 client."""
        if self._client is None:
            import boto3

            kwargs: dict = {"region_name": self._region}
            if self._endpoint_url:
                kwargs["endpoint_url"] = self._endpoint_url
            if self._access_key and self._secret_key:
                kwargs["aws_access_key_id"]     = self._access_key
                kwargs["aws_secret_access_key"] = self._secret_key
            if self._session_token:
                kwargs["aws_session_token"] = self._session_token

            self._client = boto3.client("s3", **kwargs)

        return self._client

    def public_url(self, key: str) -> str:
        quoted = quote(key, safe="/")
        if self._public_base_url:
            return f"{self._public_base_url}/{quoted}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{quoted}"

    # -----------------------------------------------------------------------
    # ObjectStoreProvider implementation
    # -----------------------------------------------------------------------

    def upload(self, local_path: Path, key: str, content_type: str) -> RemoteObject:
        if not self._bucket:
            raise RemoteUploadError("S3 bucket is not configured")

        extra_args = {"ContentType": content_type}
        if self._public_read:
            extra_args["ACL"] = "public-read"

        try:
            self._get_client().upload_file(
                str(local_path), self._bucket, key, ExtraArgs=extra_args
            )
        except Exception as exc:
            raise RemoteUploadError(
                f"Failed to upload {Path(local_path).name} to s3://{self._bucket}/{key}: {exc}"
            ) from exc

        logger.info("Uploaded %s to s3://%s/%s", Path(local_path).name, self._bucket, key)
        return RemoteObject(remote_id=key, remote_url=self.public_url(key), backend=self.name)

    def fetch(self, remote_id: str, dest_path: Path) -> Path:
        self._get_client().download_file(self._bucket, remote_id, str(dest_path))
        if Path(dest_path).stat().st_size == 0:
            raise ValueError(f"Downloaded object is empty: s3://{self._bucket}/{remote_id}")
        return Path(dest_path)

    def delete(self, remote_id: str) -> None:
        self._get_client().delete_object(Bucket=self._bucket, Key=remote_id)
        logger.info("Deleted s3://%s/%s", self._bucket, remote_id)
