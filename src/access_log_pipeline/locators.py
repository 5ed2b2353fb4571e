"""
Enumerate candidate log objects for a time range.

ALB and WAF deliver under <prefix>YYYY/MM/DD/..., so one listing per day
is enough. CloudFront writes every file straight under the prefix as
<distribution-id>.YYYY-MM-DD-HH.<id>.gz, so it is listed per hour.
"""

import logging
from typing import List, Optional

from .errors import BucketNotFound, ObjectListingFailure
from .models import LogFormat, ObjectRef
from .storage import list_objects
from .time_range import TimeRange

logger = logging.getLogger(__name__)


class DailyPrefixLocator:
    def __init__(
        self,
        s3_client,
        fmt: LogFormat,
        bucket: str,
        prefix: str = "",
        log: Optional[logging.Logger] = None,
    ):
        self.s3_client = s3_client
        self.format = fmt
        self.bucket = bucket
        self.prefix = prefix or ""
        self.logger = log or logger
        self.listing_failures = 0

    def prefixes(self, time_range: TimeRange) -> List[str]:
        return [f"{self.prefix}{day}/" for day in time_range.day_prefixes("%Y/%m/%d")]

    def locate(self, time_range: TimeRange) -> List[ObjectRef]:
        refs: List[ObjectRef] = []

        for prefix in self.prefixes(time_range):
            self.logger.debug("Listing s3://%s/%s", self.bucket, prefix)
            try:
                entries = list_objects(self.s3_client, self.bucket, prefix)
            except BucketNotFound:
                self.logger.error("S3 bucket %s does not exist", self.bucket)
                raise
            except ObjectListingFailure as e:
                self.logger.error("%s", e)
                self.listing_failures += 1
                continue

            refs.extend(
                ObjectRef.from_listing(self.format, self.bucket, entry)
                for entry in entries
            )

        self.logger.info("Found %d files", len(refs))
        return refs


def hours_to_search(time_range: TimeRange) -> List[int]:
    """
    Hours of the day to list. Narrowed to [start.hour, end.hour] only
    when a time of day was given and the range stays within one day.
    """
    if time_range.has_time_of_day and time_range.start.date() == time_range.end.date():
        return list(range(time_range.start.hour, time_range.end.hour + 1))
    return list(range(24))


class HourlyPrefixLocator:
    def __init__(
        self,
        s3_client,
        bucket: str,
        prefix: str = "",
        distribution_id: Optional[str] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.s3_client = s3_client
        self.format = LogFormat.CF
        self.bucket = bucket
        self.prefix = prefix or ""
        self.distribution_id = distribution_id
        self.logger = log or logger
        self.listing_failures = 0

    def _list(self, prefix: str) -> Optional[list]:
        try:
            return list_objects(self.s3_client, self.bucket, prefix)
        except BucketNotFound:
            self.logger.error("S3 bucket %s does not exist", self.bucket)
            raise
        except ObjectListingFailure as e:
            self.logger.error("%s", e)
            self.listing_failures += 1
            return None

    def _refs(self, entries) -> List[ObjectRef]:
        return [ObjectRef.from_listing(self.format, self.bucket, e) for e in entries]

    def locate(self, time_range: TimeRange) -> List[ObjectRef]:
        hours = hours_to_search(time_range)
        if len(hours) < 24:
            self.logger.info(
                "Searching hours %02d to %02d only (%d hour periods)",
                hours[0],
                hours[-1],
                len(hours),
            )

        refs: List[ObjectRef] = []
        for day in time_range.day_prefixes("%Y-%m-%d"):
            if self.distribution_id:
                refs.extend(self._locate_by_distribution(day, hours))
            else:
                refs.extend(self._locate_by_substring(day, hours))

        self.logger.info("Found %d files", len(refs))
        return refs

    def _locate_by_distribution(self, day: str, hours: List[int]) -> List[ObjectRef]:
        refs: List[ObjectRef] = []
        for hour in hours:
            prefix = f"{self.prefix}{self.distribution_id}.{day}-{hour:02d}"
            self.logger.debug("Listing s3://%s/%s", self.bucket, prefix)
            entries = self._list(prefix)
            if entries:
                self.logger.debug("Found %d objects under %s", len(entries), prefix)
                refs.extend(self._refs(entries))
        return refs

    def _locate_by_substring(self, day: str, hours: List[int]) -> List[ObjectRef]:
        # No distribution id: one listing of the base prefix per day, then
        # keep keys mentioning the day-hour anywhere.
        self.logger.info(
            "CF distribution id not set, listing s3://%s/%s for %s",
            self.bucket,
            self.prefix,
            day,
        )
        entries = self._list(self.prefix)
        if not entries:
            return []

        refs: List[ObjectRef] = []
        for hour in hours:
            stamp = f"{day}-{hour:02d}"
            matched = [e for e in entries if stamp in e["Key"]]
            self.logger.debug("%d files match %s", len(matched), stamp)
            refs.extend(self._refs(matched))
        return refs
