"""
S3-compatible client construction.

Builds a boto3 S3 client for one endpoint (AWS S3, Cloudflare R2, MinIO,
...) from a stored :class:`~savesync.models.Credential` and connection
options.
"""
from typing import Optional

import boto3
from botocore.config import Config

from ...models import Credential
from ...utils.config_loader import first_non_empty, parse_bool
from ...utils.logger import get_logger
from .errors import BOTO_ERRORS, translate_client_error

log = get_logger(__name__)


class S3Config:
    """Connection options for one S3-compatible endpoint."""

    def __init__(self, endpoint="", region="", bucket="", force_path_style=False,
                 use_tls=True, request_timeout=None):
        """
        Args:
            endpoint: Host or URL of the endpoint (blank for AWS defaults)
            region: Signing region
            bucket: Bucket name
            force_path_style: Use path-style addressing instead of virtual hosts
            use_tls: Scheme used when *endpoint* carries none
            request_timeout: Connect/read timeout in seconds (botocore default if None)
        """
        self.endpoint = endpoint
        self.region = region
        self.bucket = bucket
        self.force_path_style = force_path_style
        self.use_tls = use_tls
        self.request_timeout = request_timeout

    def __repr__(self):
        return (f"S3Config(endpoint={self.endpoint!r}, region={self.region!r}, "
                f"bucket={self.bucket!r}, force_path_style={self.force_path_style}, "
                f"use_tls={self.use_tls})")


def normalize_endpoint(endpoint: str, use_tls: bool) -> Optional[str]:
    """Complete the scheme of an endpoint.

    Example:
        >>> normalize_endpoint("minio.local:9000", use_tls=False)
        'http://minio.local:9000'
        >>> normalize_endpoint("https://r2.example.com", use_tls=False)
        'https://r2.example.com'
        >>> normalize_endpoint("   ", use_tls=True) is None
        True
    """
    trimmed = (endpoint or "").strip()
    if not trimmed:
        return None
    if trimmed.startswith(("http://", "https://")):
        return trimmed
    scheme = "https" if use_tls else "http"
    return f"{scheme}://{trimmed}"


def resolve_s3_config(settings: dict, credential: Credential) -> S3Config:
    """Merge credential fields over configured defaults.

    The credential's bucket, region and endpoint win when not blank.

    Args:
        settings: Configuration dictionary (see ``DEFAULT_CONFIG``)
        credential: Stored credential

    Returns:
        S3Config for :func:`create_s3_client`
    """
    return S3Config(
        endpoint=first_non_empty(credential.endpoint, settings.get("s3_endpoint")),
        region=first_non_empty(credential.region, settings.get("s3_region")),
        bucket=first_non_empty(credential.bucket_name, settings.get("s3_bucket")),
        force_path_style=parse_bool(settings.get("s3_force_path_style"), False),
        use_tls=parse_bool(settings.get("s3_use_tls"), True),
        request_timeout=settings.get("s3_request_timeout"),
    )


def create_s3_client(config: S3Config, credential: Credential):
    """Create a boto3 S3 client with static credentials.

    The returned client is safe to share between threads.

    Args:
        config: Connection options
        credential: Access key material

    Returns:
        botocore S3 client
    """
    config_kwargs = {
        "signature_version": "s3v4",
        "s3": {"addressing_style": "path" if config.force_path_style else "auto"},
    }
    if config.region:
        config_kwargs["region_name"] = config.region
    if config.request_timeout:
        config_kwargs["connect_timeout"] = config.request_timeout
        config_kwargs["read_timeout"] = config.request_timeout

    client_kwargs = {
        "aws_access_key_id": credential.access_key_id,
        "aws_secret_access_key": credential.secret_access_key,
        "config": Config(**config_kwargs),
    }
    endpoint_url = normalize_endpoint(config.endpoint, config.use_tls)
    if endpoint_url:
        client_kwargs["endpoint_url"] = endpoint_url

    log.debug("Creating S3 client for %s (region=%s, path_style=%s)",
              endpoint_url or "default endpoint", config.region or "-", config.force_path_style)
    return boto3.client("s3", **client_kwargs)


def validate_bucket_access(client, bucket: str) -> bool:
    """Check that the credential can reach *bucket*.

    Raises:
        NotFoundError: If the bucket does not exist
        TransferError: If the bucket is unreachable or access is denied
    """
    try:
        client.head_bucket(Bucket=bucket)
    except BOTO_ERRORS as e:
        raise translate_client_error(e, "HeadBucket", bucket) from e
    return True
