"""
Thin wrapper around the boto3 S3 client.

Listing is fully paginated here so callers can treat each prefix query
as returning one complete list.
"""

import shutil
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import (
    BucketNotFound,
    ConfigurationError,
    ObjectFetchFailure,
    ObjectListingFailure,
)

MISSING_BUCKET_CODES = ("NoSuchBucket",)
MISSING_KEY_CODES = ("NoSuchKey", "404")


def build_s3_client(region: str, profile: Optional[str] = None):
    try:
        session = boto3.Session(profile_name=profile, region_name=region)
        return session.client("s3")
    except BotoCoreError as e:
        raise ConfigurationError(f"Could not create S3 client: {e}") from e


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


def list_objects(s3_client, bucket: str, prefix: str) -> List[Dict[str, Any]]:
    """
    Return every `Contents` entry under bucket/prefix, following
    continuation tokens until the listing is exhausted.
    """
    objects: List[Dict[str, Any]] = []
    continuation_token = None

    while True:
        kwargs = {"Bucket": bucket, "Prefix": prefix}
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token

        try:
            resp = s3_client.list_objects_v2(**kwargs)
        except ClientError as e:
            if _error_code(e) in MISSING_BUCKET_CODES:
                raise BucketNotFound(bucket, prefix) from e
            raise ObjectListingFailure(bucket, prefix, str(e)) from e
        except BotoCoreError as e:
            raise ObjectListingFailure(bucket, prefix, str(e)) from e

        objects.extend(resp.get("Contents", []))

        if resp.get("IsTruncated"):
            continuation_token = resp.get("NextContinuationToken")
        else:
            break

    return objects


def download_object(s3_client, bucket: str, key: str, path: str) -> int:
    """Stream s3://bucket/key into a local file. Returns the byte count."""
    try:
        obj = s3_client.get_object(Bucket=bucket, Key=key)
        with open(path, "wb") as f_out:
            shutil.copyfileobj(obj["Body"], f_out)
            return f_out.tell()
    except ClientError as e:
        code = _error_code(e)
        if code in MISSING_KEY_CODES:
            raise ObjectFetchFailure(f"s3://{bucket}/{key} does not exist") from e
        raise ObjectFetchFailure(f"Failed to get s3://{bucket}/{key}: {e}") from e
    except BotoCoreError as e:
        raise ObjectFetchFailure(f"Failed to get s3://{bucket}/{key}: {e}") from e
