"""
Line parsers for ALB, CloudFront and WAF access logs.

Responsibilities:
- Split one raw log line into the fixed column set of its format
- Count lines that cannot be parsed instead of failing the run
- Write parsed rows to CSV, one row per line

Each parse_*_line function returns a list of string values, returns None
for lines that carry no record (blank or comment lines), or raises
LineParseFailure.
"""

import csv
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from .errors import LineParseFailure

logger = logging.getLogger(__name__)

ParsedRecord = Dict[str, str]
LineParser = Callable[[str], Optional[List[str]]]

# ----------------------------
# Column definitions
# ----------------------------

ALB_COLUMNS = [
    "type",
    "timestamp",
    "elb",
    "client_ip_port",
    "target_ip_port",
    "request_processing_time",
    "target_processing_time",
    "response_processing_time",
    "elb_status_code",
    "target_status_code",
    "received_bytes",
    "sent_bytes",
    "request",
    "user_agent",
    "ssl_protocol",
    "ssl_cipher",
    "target_group_arn",
    "trace_id",
    "domain_name",
    "chosen_cert_arn",
    "matched_rule_priority",
    "request_creation_time",
    "actions_executed",
    "redirect_url",
    "error_reason",
    "target_port_list",
    "target_status_code_list",
    "classification",
    "classification_reason",
]

# https://docs.aws.amazon.com/AmazonCloudFront/latest/DeveloperGuide/AccessLogs.html
CF_COLUMNS = [
    "date",
    "time",
    "x-edge-location",
    "sc-bytes",
    "c-ip",
    "cs-method",
    "cs-host",
    "cs-uri-stem",
    "sc-status",
    "cs-referer",
    "cs-user-agent",
    "cs-uri-query",
    "cs-cookie",
    "x-edge-result-type",
    "x-edge-request-id",
    "x-host-header",
    "cs-protocol",
    "cs-bytes",
    "time-taken",
    "x-forwarded-for",
    "ssl-protocol",
    "ssl-cipher",
    "x-edge-response-result-type",
    "cs-protocol-version",
    "fle-status",
    "fle-encrypted-fields",
    "c-port",
    "time-to-first-byte",
    "x-edge-detailed-result-type",
    "sc-content-type",
    "sc-content-len",
    "sc-range-start",
    "sc-range-end",
]

WAF_COLUMNS = [
    "timestamp",
    "formatVersion",
    "webaclId",
    "terminatingRuleId",
    "terminatingRuleType",
    "action",
    "httpSourceName",
    "httpSourceId",
    "clientIp",
    "country",
    "uri",
    "args",
    "httpMethod",
    "requestId",
    "httpVersion",
    "headers",
    "labels",
    "ja3Fingerprint",
    "ja4Fingerprint",
]

WAF_TOP_LEVEL_FIELDS = [
    "timestamp",
    "formatVersion",
    "webaclId",
    "terminatingRuleId",
    "terminatingRuleType",
    "action",
    "httpSourceName",
    "httpSourceId",
]

WAF_HTTP_REQUEST_FIELDS = [
    "clientIp",
    "country",
    "uri",
    "args",
    "httpMethod",
    "requestId",
    "httpVersion",
]

# ----------------------------
# ALB
# ----------------------------


def tokenize_alb_line(line: str) -> List[str]:
    """
    Split on spaces, keeping quoted sections together:

      GET "/a b" 200  ->  ["GET", "/a b", "200"]

    Quotes are kept while scanning and stripped from fields fully
    wrapped in them afterwards.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
            current.append(char)
        elif char == " " and not in_quotes:
            if current:
                fields.append("".join(current))
                current = []
        else:
            current.append(char)

    if in_quotes:
        raise LineParseFailure("unterminated quoted field")

    if current:
        fields.append("".join(current))

    return [
        f[1:-1] if len(f) >= 2 and f.startswith('"') and f.endswith('"') else f
        for f in fields
    ]


def parse_alb_line(line: str) -> Optional[List[str]]:
    line = line.strip()
    if not line:
        return None
    return tokenize_alb_line(line)


# ----------------------------
# CloudFront
# ----------------------------


def parse_cf_line(line: str) -> Optional[List[str]]:
    line = line.strip("\r\n")
    if not line.strip():
        return None

    # "#Version:" / "#Fields:" header lines
    if line.startswith("#"):
        return None

    fields = line.split("\t")
    if len(fields) < 2:
        raise LineParseFailure("not a tab-delimited CloudFront record")
    return fields


# ----------------------------
# WAF
# ----------------------------


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return _json(value)
    return str(value)


def _json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def parse_waf_line(line: str) -> Optional[List[str]]:
    line = line.strip()
    if not line:
        return None

    try:
        data = json.loads(line)
    except ValueError as e:
        raise LineParseFailure(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise LineParseFailure("WAF record is not a JSON object")

    http_req = data.get("httpRequest") or {}
    if not isinstance(http_req, dict):
        raise LineParseFailure("httpRequest is not a JSON object")

    row = [_text(data.get(name)) for name in WAF_TOP_LEVEL_FIELDS]
    row += [_text(http_req.get(name)) for name in WAF_HTTP_REQUEST_FIELDS]
    row.append(_json(http_req.get("headers") or []))
    row.append(_json(data.get("labels") or []))
    row.append(_text(data.get("ja3Fingerprint")))
    row.append(_text(data.get("ja4Fingerprint")))
    return row


# ----------------------------
# Records and CSV output
# ----------------------------


@dataclass
class ParseStats:
    success: int = 0
    errors: int = 0


def to_record(columns: List[str], values: List[str]) -> ParsedRecord:
    """
    Map positional values onto the column list. Short rows are padded
    with empty strings; values past the last column are dropped.
    """
    if len(values) > len(columns):
        logger.debug(
            "Dropping %d values beyond the %d known columns",
            len(values) - len(columns),
            len(columns),
        )
    padded = list(values[: len(columns)]) + [""] * (len(columns) - len(values))
    return dict(zip(columns, padded))


def parse_lines(
    text: str,
    columns: List[str],
    parse_line: LineParser,
    stats: ParseStats,
    log: Optional[logging.Logger] = None,
) -> Iterator[ParsedRecord]:
    """
    Yield a record for each parseable line of text, counting successes
    and failures into stats.
    """
    log = log or logger

    for line in text.split("\n"):
        try:
            values = parse_line(line)
        except LineParseFailure as e:
            stats.errors += 1
            log.warning("Failed to parse log line: %s", e)
            log.debug("Problematic line: %s", line)
            continue

        if values is None:
            continue

        stats.success += 1
        yield to_record(columns, values)


def ensure_output_dir(path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)


def write_csv(
    records: Iterable[ParsedRecord],
    columns: List[str],
    output_path: str,
) -> int:
    """Write records to output_path with a header row. Returns the row count."""
    ensure_output_dir(output_path)

    count = 0
    with open(output_path, "w", newline="", encoding="utf-8") as f_out:
        writer = csv.DictWriter(f_out, fieldnames=columns)
        writer.writeheader()
        for record in records:
            writer.writerow(record)
            count += 1

    return count


def to_csv(
    text: str,
    columns: List[str],
    parse_line: LineParser,
    output_path: str,
    log: Optional[logging.Logger] = None,
) -> int:
    """
    CLI-friendly helper: parse raw log text and write it to a CSV file.
    Returns the number of rows written.
    """
    log = log or logger
    stats = ParseStats()
    count = write_csv(
        parse_lines(text, columns, parse_line, stats, log=log), columns, output_path
    )
    log.info("Processing complete: success=%d, failed=%d", stats.success, stats.errors)
    return count
