from __future__ import annotations

from typing import Any, Optional

import boto3
from botocore.config import Config

from ..config import settings


def boto3_client(
    service: str,
    *,
    region: Optional[str] = None,
    endpoint_url: Optional[str] = None,
    access_key_id: Optional[str] = None,
    secret_access_key: Optional[str] = None,
) -> Any:
    kwargs: dict[str, Any] = {
        "region_name": region or settings.aws.region,
        "config": Config(retries={"max_attempts": 3}),
    }
    key_id = access_key_id or settings.aws.access_key_id
    secret = secret_access_key or settings.aws.secret_access_key
    if key_id and secret:
        kwargs["aws_access_key_id"] = key_id
        kwargs["aws_secret_access_key"] = secret
    endpoint = endpoint_url or settings.aws.s3_endpoint_url
    if endpoint and service == "s3":
        kwargs["endpoint_url"] = endpoint
    return boto3.client(service, **kwargs)
