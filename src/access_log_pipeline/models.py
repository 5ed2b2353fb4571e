from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Union


class LogFormat(str, Enum):
    ALB = "alb"
    CF = "cf"
    WAF = "waf"


@dataclass(frozen=True)
class S3Location:
    bucket: str
    key: str

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


@dataclass(frozen=True)
class LocalLocation:
    path: str


@dataclass(frozen=True)
class ObjectRef:
    """
    One stored log file: an S3 object or a path on local disk.

    size and last_modified are only known for objects that came out of
    a bucket listing.
    """

    format: LogFormat
    location: Union[S3Location, LocalLocation]
    size: Optional[int] = None
    last_modified: Optional[datetime] = None

    @classmethod
    def from_listing(
        cls, fmt: LogFormat, bucket: str, entry: Dict[str, Any]
    ) -> "ObjectRef":
        """Build a ref from one `Contents` entry of list_objects_v2."""
        return cls(
            format=fmt,
            location=S3Location(bucket=bucket, key=entry["Key"]),
            size=entry.get("Size"),
            last_modified=entry.get("LastModified"),
        )

    @property
    def is_remote(self) -> bool:
        return isinstance(self.location, S3Location)

    @property
    def name(self) -> str:
        if self.is_remote:
            return self.location.key
        return self.location.path

    @property
    def is_gzip(self) -> bool:
        return self.name.endswith(".gz")

    def __str__(self) -> str:
        if self.is_remote:
            return self.location.uri
        return self.location.path


@dataclass(frozen=True)
class ObjectInterval:
    """
    Time span an object covers.

    Minute-stamped objects are points (end == start, end inclusive);
    CloudFront hour buckets are [start, start + 1h) with an exclusive end.
    """

    start: datetime
    end: datetime
    end_exclusive: bool = False

    @classmethod
    def point(cls, ts: datetime) -> "ObjectInterval":
        return cls(start=ts, end=ts)

    @classmethod
    def hour_bucket(cls, ts: datetime) -> "ObjectInterval":
        return cls(start=ts, end=ts + timedelta(hours=1), end_exclusive=True)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        if self.start > end:
            return False
        if self.end_exclusive:
            return self.end > start
        return self.end >= start


@dataclass
class RawContent:
    ref: ObjectRef
    text: str
