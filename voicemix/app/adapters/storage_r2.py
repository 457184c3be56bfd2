import logging
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from voicemix.app.config import StorageConfig
from voicemix.app.core.errors import StoreAuthError, StoreWriteError
from voicemix.app.ports.storage import IObjectStore

logger = logging.getLogger(__name__)

# Characters encodeURI leaves untouched, besides alphanumerics and "_.-~".
_URI_SAFE = ";,/?:@&=+$!*'()#"


def _quote_key(key: str) -> str:
    return quote(key, safe=_URI_SAFE)


class R2ObjectStore(IObjectStore):
    def __init__(self, config: StorageConfig, client=None):
        self.config = config
        self.bucket_name = config.bucket
        if client is None:
            client = boto3.client(
                "s3",
                endpoint_url=config.endpoint,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                region_name=config.region or "auto",
                config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
            )
        self.s3_client = client

    def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str | None = None,
    ) -> str:
        params = {"Bucket": self.bucket_name, "Key": key, "Body": body}
        if content_type:
            params["ContentType"] = content_type
        try:
            self.s3_client.put_object(**params)
        except (ClientError, BotoCoreError) as exc:
            raise StoreWriteError(f"put_object failed for {key}: {exc}", cause=exc) from exc
        logger.info("Stored %s (%d bytes)", key, len(body))
        return key

    def signed_read_url(self, key: str, ttl_seconds: int) -> str:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StoreAuthError(f"presign failed for {key}: {exc}", cause=exc) from exc

    def public_url(self, key: str) -> str:
        cfg = self.config
        host = cfg.endpoint_host
        if host.endswith(f".{cfg.store_domain}"):
            return f"https://{cfg.bucket}.{cfg.account_id}.{cfg.store_domain}/{_quote_key(key)}"
        # Custom domain: the endpoint itself is the public base.
        return f"{cfg.endpoint}/{_quote_key(key)}"
