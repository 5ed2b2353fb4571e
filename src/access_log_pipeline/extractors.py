"""
Recover the time an S3 object represents from its key, and filter
objects against a requested time range.

Key layouts (examples):

  ALB  AWSLogs/123/elasticloadbalancing/ap-northeast-1/2025/05/07/
         123_elasticloadbalancing_ap-northeast-1_app.my-alb.5b4c_20250507T0005Z_10.0.0.1_3d8w.log.gz
  CF   AWSLogs/123/cflogs/site/E126FWE9F8MOZF.2022-09-28-12.2a16302d.gz
  WAF  AWSLogs/123/WAFLogs/cloudfront/my-acl/2025/05/07/03/50/
         123_waflogs_cloudfront_my-acl_20250507T0350Z_0a7915da.log.gz

When no pattern matches, the object's LastModified is used instead.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from .models import ObjectInterval, ObjectRef
from .time_range import TimeRange

logger = logging.getLogger(__name__)

PATH_DATE_RE = re.compile(r"(\d{4})/(\d{2})/(\d{2})")
PATH_MINUTE_RE = re.compile(r"(\d{4})/(\d{2})/(\d{2})/(\d{2})/(\d{2})")
FILENAME_STAMP_RE = re.compile(r"(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})Z")
CF_HOUR_RE = re.compile(r"\.(\d{4})-(\d{2})-(\d{2})-(\d{2})\.")


def _utc(*parts: str) -> Optional[datetime]:
    try:
        return datetime(*(int(p) for p in parts), tzinfo=timezone.utc)
    except ValueError:
        return None


def extract_alb_time(key: str) -> Optional[ObjectInterval]:
    path_match = PATH_DATE_RE.search(key)
    stamp_match = FILENAME_STAMP_RE.search(key)
    if not (path_match and stamp_match):
        return None

    # date from the path, hour:minute from the filename
    ts = _utc(*path_match.groups(), stamp_match.group(4), stamp_match.group(5))
    return ObjectInterval.point(ts) if ts else None


def extract_cf_time(key: str) -> Optional[ObjectInterval]:
    m = CF_HOUR_RE.search(key)
    if not m:
        return None

    ts = _utc(*m.groups())
    return ObjectInterval.hour_bucket(ts) if ts else None


def extract_waf_time(key: str) -> Optional[ObjectInterval]:
    # Path and filename minutes are not cross-checked; the path wins.
    m = PATH_MINUTE_RE.search(key)
    if m:
        ts = _utc(*m.groups())
        if ts:
            return ObjectInterval.point(ts)

    m = FILENAME_STAMP_RE.search(key)
    if m:
        ts = _utc(*m.groups())
        if ts:
            return ObjectInterval.point(ts)

    return None


KeyExtractor = Callable[[str], Optional[ObjectInterval]]


def object_interval(ref: ObjectRef, extract_time: KeyExtractor) -> Optional[ObjectInterval]:
    """
    Time span for ref: the key pattern of its format, then LastModified.
    Returns None when neither is available.
    """
    interval = extract_time(ref.name)
    if interval is not None:
        return interval
    if ref.last_modified is not None:
        return ObjectInterval.point(ref.last_modified)
    return None


def filter_objects(
    refs: Iterable[ObjectRef],
    time_range: TimeRange,
    extract_time: KeyExtractor,
    log: Optional[logging.Logger] = None,
) -> List[ObjectRef]:
    """
    Keep objects whose interval overlaps time_range.

    Date-only ranges are already narrowed by the day prefixes, so every
    object passes through untouched.
    """
    log = log or logger
    refs = list(refs)

    if not time_range.has_time_of_day:
        return refs

    log.info(
        "Filtering by time range: %s to %s",
        time_range.start.isoformat(),
        time_range.end.isoformat(),
    )

    kept: List[ObjectRef] = []
    for ref in refs:
        interval = object_interval(ref, extract_time)
        if interval is None:
            log.warning("No timestamp for %s, skipping", ref)
            continue

        if interval.overlaps(time_range.start, time_range.end):
            log.debug(
                "Including %s (%s to %s)",
                ref.name,
                interval.start.isoformat(),
                interval.end.isoformat(),
            )
            kept.append(ref)
        else:
            log.debug("Skipping %s, outside time range", ref.name)

    log.info("Files after time filtering: %d of %d", len(kept), len(refs))
    return kept
