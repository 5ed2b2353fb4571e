"""
Per-format behaviour, looked up by LogFormat.

Each entry bundles the column list, line parser, key timestamp extractor
and a factory for the object locator of one log format.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from .config import ServiceConfig
from .errors import ConfigurationError
from .extractors import extract_alb_time, extract_cf_time, extract_waf_time
from .locators import DailyPrefixLocator, HourlyPrefixLocator
from .models import LogFormat, ObjectInterval
from .parsers import (
    ALB_COLUMNS,
    CF_COLUMNS,
    WAF_COLUMNS,
    LineParser,
    parse_alb_line,
    parse_cf_line,
    parse_waf_line,
)

Locator = Union[DailyPrefixLocator, HourlyPrefixLocator]


def _daily_locator(fmt: LogFormat):
    def build(s3_client, service: ServiceConfig, log: logging.Logger) -> Locator:
        return DailyPrefixLocator(
            s3_client, fmt, bucket=service.bucket, prefix=service.prefix, log=log
        )

    return build


def _hourly_locator(s3_client, service: ServiceConfig, log: logging.Logger) -> Locator:
    return HourlyPrefixLocator(
        s3_client,
        bucket=service.bucket,
        prefix=service.prefix,
        distribution_id=service.distribution_id,
        log=log,
    )


@dataclass(frozen=True)
class FormatSpec:
    format: LogFormat
    label: str
    columns: List[str]
    parse_line: LineParser
    extract_time: Callable[[str], Optional[ObjectInterval]]
    build_locator: Callable[[object, ServiceConfig, logging.Logger], Locator]


FORMATS: Dict[LogFormat, FormatSpec] = {
    LogFormat.ALB: FormatSpec(
        format=LogFormat.ALB,
        label="ALB",
        columns=ALB_COLUMNS,
        parse_line=parse_alb_line,
        extract_time=extract_alb_time,
        build_locator=_daily_locator(LogFormat.ALB),
    ),
    LogFormat.CF: FormatSpec(
        format=LogFormat.CF,
        label="CloudFront",
        columns=CF_COLUMNS,
        parse_line=parse_cf_line,
        extract_time=extract_cf_time,
        build_locator=_hourly_locator,
    ),
    LogFormat.WAF: FormatSpec(
        format=LogFormat.WAF,
        label="WAF",
        columns=WAF_COLUMNS,
        parse_line=parse_waf_line,
        extract_time=extract_waf_time,
        build_locator=_daily_locator(LogFormat.WAF),
    ),
}


def get_format(name: Union[str, LogFormat]) -> FormatSpec:
    try:
        return FORMATS[LogFormat(name)]
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown log format '{name}' (expected one of: "
            + ", ".join(f.value for f in LogFormat)
            + ")"
        ) from e
