"""
Fetch-and-normalize pipeline for one log format.

  resolve range -> locate -> extract + filter -> retrieve -> parse -> CSV

Everything runs sequentially, one object at a time. Rows are written in
the order objects arrive.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional
from urllib.parse import urlparse

from .config import ServiceConfig
from .errors import ConfigurationError
from .extractors import filter_objects
from .formats import FormatSpec, get_format
from .models import LocalLocation, LogFormat, ObjectRef, RawContent, S3Location
from .parsers import ParseStats, ParsedRecord, parse_lines, write_csv
from .retriever import Retriever
from .time_range import TimeRange, resolve_time_range

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    output_path: Optional[str]
    files_found: int
    files_failed: int
    rows_written: int
    parse_errors: int
    listing_failures: int = 0


def resolve_single_file(fmt: LogFormat, file: str) -> ObjectRef:
    """s3://bucket/key goes to S3; anything else is a local path."""
    parsed = urlparse(file)
    if parsed.scheme == "s3":
        key = parsed.path.lstrip("/")
        if not parsed.netloc or not key:
            raise ConfigurationError(f"Invalid S3 URI '{file}' (expected s3://bucket/key)")
        return ObjectRef(format=fmt, location=S3Location(bucket=parsed.netloc, key=key))
    return ObjectRef(format=fmt, location=LocalLocation(path=file))


class LogPipeline:
    def __init__(
        self,
        fmt,
        service: ServiceConfig,
        s3_client=None,
        log: Optional[logging.Logger] = None,
        tmp_dir: Optional[str] = None,
    ):
        self.spec: FormatSpec = get_format(fmt)
        self.service = service
        self.s3_client = s3_client
        self.logger = log or logger
        self.retriever = Retriever(s3_client, log=self.logger, tmp_dir=tmp_dir)
        self.listing_failures = 0

    @property
    def format(self) -> LogFormat:
        return self.spec.format

    def list_files(
        self,
        file: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> List[ObjectRef]:
        if file:
            ref = resolve_single_file(self.format, file)
            self.logger.info("Processing single file: %s", ref)
            return [ref]

        if start and end:
            return self.list_range(resolve_time_range(start, end))

        raise ConfigurationError("Specify either a file or both a start and an end")

    def list_range(self, time_range: TimeRange) -> List[ObjectRef]:
        self.service.require_bucket(self.format)
        self.logger.info(
            "Fetching %s logs from %s to %s",
            self.spec.label,
            time_range.start.isoformat(),
            time_range.end.isoformat(),
        )

        locator = self.spec.build_locator(self.s3_client, self.service, self.logger)
        refs = locator.locate(time_range)
        self.listing_failures += locator.listing_failures
        if self.listing_failures:
            self.logger.warning(
                "%d %s listings failed, results may be incomplete",
                self.listing_failures,
                self.spec.label,
            )
        return filter_objects(refs, time_range, self.spec.extract_time, log=self.logger)

    def download(self, refs: Iterable[ObjectRef]) -> Iterator[RawContent]:
        return self.retriever.fetch_all(refs)

    def records(self, contents: Iterable[RawContent], stats: ParseStats) -> Iterator[ParsedRecord]:
        for content in contents:
            yield from parse_lines(
                content.text,
                self.spec.columns,
                self.spec.parse_line,
                stats,
                log=self.logger,
            )

    def to_csv(self, contents: Iterable[RawContent], output_path: str) -> ParseStats:
        stats = ParseStats()
        write_csv(self.records(contents, stats), self.spec.columns, output_path)
        self.logger.info(
            "Processing complete: success=%d, failed=%d", stats.success, stats.errors
        )
        return stats

    def run(
        self,
        output_path: str,
        file: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> RunResult:
        refs = self.list_files(file=file, start=start, end=end)
        if not refs:
            self.logger.error("No target log files found")
            return RunResult(None, 0, 0, 0, 0, listing_failures=self.listing_failures)

        self.logger.info("Found %d log files, downloading", len(refs))
        stats = self.to_csv(self.download(refs), output_path)

        if self.retriever.failed:
            self.logger.warning(
                "%d of %d files could not be fetched", self.retriever.failed, len(refs)
            )

        return RunResult(
            output_path=output_path,
            files_found=len(refs),
            files_failed=self.retriever.failed,
            rows_written=stats.success,
            parse_errors=stats.errors,
            listing_failures=self.listing_failures,
        )
