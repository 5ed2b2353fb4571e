"""
Command line entrypoint.

  access-log-pipeline fetch alb --start 2025-05-07 --end 2025-05-08
  access-log-pipeline fetch cf --start 2025-05-07T08:10:00 --end 2025-05-07T10:05:00
  access-log-pipeline fetch waf --file s3://my-bucket/path/to/file.log.gz --output waf.csv
"""

import argparse
import base64
import logging
import os
import secrets
import sys
from datetime import datetime, timezone
from typing import List, Optional

from .config import load_config
from .errors import LogPipelineError
from .models import LogFormat
from .pipeline import LogPipeline
from .storage import build_s3_client

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

logger = logging.getLogger("access_log_pipeline")


def configure_logging(verbose: bool = False) -> logging.Logger:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False

    # boto is chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)
    return logger


def generate_default_filename(fmt: LogFormat, now: Optional[datetime] = None) -> str:
    """<fmt>_<base64url(UTC timestamp + random hex)>.csv, unique per run."""
    now = now or datetime.now(timezone.utc)
    identifier = f"{now.strftime('%Y%m%d%H%M%S')}_{secrets.token_hex(4)}"
    encoded = base64.urlsafe_b64encode(identifier.encode("ascii")).decode("ascii").rstrip("=")
    return f"{fmt.value}_{encoded}.csv"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="access-log-pipeline",
        description="Fetch ALB / CloudFront / WAF access logs and convert them to CSV",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Fetch logs and write a CSV file")
    fetch.add_argument(
        "log_format",
        choices=[f.value for f in LogFormat],
        help="Log format to fetch",
    )
    fetch.add_argument("--file", help="S3 URI (s3://bucket/key) or local log file")
    fetch.add_argument(
        "--start", help="Start date/time (YYYY-MM-DD or YYYY-MM-DDThh:mm:ss, UTC)"
    )
    fetch.add_argument(
        "--end", help="End date/time (YYYY-MM-DD or YYYY-MM-DDThh:mm:ss, UTC)"
    )
    fetch.add_argument(
        "--output", help="Output CSV filename, relative to OUTPUT_DIR (default: generated)"
    )
    fetch.add_argument("--region", help="AWS region (default: DEFAULT_REGION)")
    fetch.add_argument("--profile", help="AWS shared credentials profile")
    fetch.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)

    if not args.file and not (args.start and args.end):
        fetch.error("either --file or both --start and --end are required")

    return args


def fetch(args: argparse.Namespace) -> int:
    log = configure_logging(args.verbose)
    fmt = LogFormat(args.log_format)

    try:
        config = load_config()
        region = args.region or config.region
        s3_client = build_s3_client(region, profile=args.profile)

        output_name = args.output or generate_default_filename(fmt)
        output_path = os.path.join(config.output_dir, output_name)

        pipeline = LogPipeline(fmt, config.service(fmt), s3_client=s3_client, log=log)
        result = pipeline.run(
            output_path, file=args.file, start=args.start, end=args.end
        )
    except LogPipelineError as e:
        log.error("Error: %s", e)
        log.debug("Traceback:", exc_info=True)
        return 1

    if result.output_path:
        log.info("Wrote %d rows of logs to CSV: %s", result.rows_written, result.output_path)

    if result.listing_failures:
        log.error(
            "Error: %d S3 listings failed, some log files were not searched",
            result.listing_failures,
        )
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.command == "fetch":
        return fetch(args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
