import io
import logging
import os
from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


def fixture_path(name: str) -> str:
    return os.path.join(FIXTURES_DIR, name)


def read_fixture(name: str) -> str:
    with open(fixture_path(name), "r", encoding="utf-8") as f:
        return f.read()


def client_error(code: str, operation: str = "ListObjectsV2") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    """
    Minimal stand-in for the boto3 S3 client.

    objects: {(bucket, key): bytes}; list_errors: {prefix: exception}
    """

    def __init__(self, objects=None, list_errors=None, last_modified=None):
        self.objects = dict(objects or {})
        self.list_errors = dict(list_errors or {})
        self.last_modified = last_modified or datetime(2025, 5, 7, tzinfo=timezone.utc)
        self.list_calls = []
        self.get_calls = []

    def list_objects_v2(self, Bucket, Prefix, ContinuationToken=None):
        self.list_calls.append(Prefix)
        if Prefix in self.list_errors:
            raise self.list_errors[Prefix]
        if not any(b == Bucket for b, _ in self.objects) and self.objects:
            raise client_error("NoSuchBucket")

        contents = [
            {"Key": key, "Size": len(body), "LastModified": self.last_modified}
            for (bucket, key), body in sorted(self.objects.items())
            if bucket == Bucket and key.startswith(Prefix)
        ]
        resp = {"IsTruncated": False, "KeyCount": len(contents)}
        if contents:
            resp["Contents"] = contents
        return resp

    def get_object(self, Bucket, Key):
        self.get_calls.append((Bucket, Key))
        if (Bucket, Key) not in self.objects:
            raise client_error("NoSuchKey", "GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}


@pytest.fixture
def logger():
    log = logging.getLogger("access_log_pipeline.tests")
    log.setLevel(logging.DEBUG)
    return log
