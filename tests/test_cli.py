import base64
import csv
import gzip
import logging
from datetime import datetime, timezone

import pytest

from access_log_pipeline import cli
from access_log_pipeline.config import AppConfig, ServiceConfig
from access_log_pipeline.models import LogFormat

from conftest import FakeS3Client, client_error, fixture_path, read_fixture


@pytest.fixture
def app_config(tmp_path, monkeypatch):
    cfg = AppConfig(
        region="us-east-1",
        output_dir=str(tmp_path / "output"),
        alb=ServiceConfig(bucket="alb-logs", prefix="alb/"),
        cf=ServiceConfig(),
        waf=ServiceConfig(),
    )
    monkeypatch.setattr(cli, "load_config", lambda: cfg)
    monkeypatch.setattr(cli, "build_s3_client", lambda region, profile=None: FakeS3Client())
    return cfg


def test_fetch_local_file(app_config, tmp_path):
    code = cli.main(
        ["fetch", "alb", "--file", fixture_path("sample_alb_log.txt"), "--output", "alb.csv"]
    )

    assert code == 0
    with open(tmp_path / "output" / "alb.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["elb_status_code"] for r in rows] == ["200", "404"]


def test_default_output_name(app_config, tmp_path):
    assert cli.main(["fetch", "cf", "--file", fixture_path("sample_cf_log.txt")]) == 0

    written = list((tmp_path / "output").iterdir())
    assert len(written) == 1
    assert written[0].name.startswith("cf_")
    assert written[0].suffix == ".csv"


def test_invalid_time_exits_non_zero(app_config):
    assert cli.main(["fetch", "alb", "--start", "2025/05/07", "--end", "2025-05-08"]) == 1


def test_missing_bucket_setting_exits_non_zero(app_config):
    assert cli.main(["fetch", "waf", "--start", "2025-05-07", "--end", "2025-05-08"]) == 1


def test_no_files_found_is_not_an_error(app_config, tmp_path):
    assert cli.main(["fetch", "alb", "--start", "2025-05-07", "--end", "2025-05-07"]) == 0
    assert not (tmp_path / "output").exists()


def test_every_listing_failed_exits_non_zero(app_config, monkeypatch, tmp_path):
    denied = {
        "alb/2025/05/07/": client_error("AccessDenied"),
        "alb/2025/05/08/": client_error("AccessDenied"),
    }
    monkeypatch.setattr(
        cli, "build_s3_client", lambda region, profile=None: FakeS3Client(list_errors=denied)
    )

    assert cli.main(["fetch", "alb", "--start", "2025-05-07", "--end", "2025-05-08"]) == 1
    assert not (tmp_path / "output").exists()


def test_partial_listing_failure_writes_csv_and_exits_non_zero(app_config, monkeypatch, tmp_path):
    line = read_fixture("sample_alb_log.txt").splitlines()[0] + "\n"
    s3 = FakeS3Client(
        {("alb-logs", "alb/2025/05/08/a_20250508T0005Z_x.log.gz"): gzip.compress(line.encode("utf-8"))},
        list_errors={"alb/2025/05/07/": client_error("AccessDenied")},
    )
    monkeypatch.setattr(cli, "build_s3_client", lambda region, profile=None: s3)

    code = cli.main(
        ["fetch", "alb", "--start", "2025-05-07", "--end", "2025-05-08", "--output", "alb.csv"]
    )

    assert code == 1
    with open(tmp_path / "output" / "alb.csv", newline="", encoding="utf-8") as f:
        assert len(list(csv.DictReader(f))) == 1


def test_file_or_range_is_required(app_config):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["fetch", "alb", "--start", "2025-05-07"])
    assert exc_info.value.code == 2


def test_unknown_format_is_rejected(app_config):
    with pytest.raises(SystemExit):
        cli.main(["fetch", "elb", "--file", "x.log"])


def test_generate_default_filename():
    now = datetime(2025, 5, 7, 1, 2, 3, tzinfo=timezone.utc)
    name = cli.generate_default_filename(LogFormat.WAF, now=now)

    assert name.startswith("waf_") and name.endswith(".csv")
    token = name[len("waf_"):-len(".csv")]
    assert "=" not in token
    decoded = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode("ascii")
    assert decoded.startswith("20250507010203_")
    assert len(decoded.split("_")[1]) == 8


def test_configure_logging_levels():
    assert cli.configure_logging(verbose=True).level == logging.DEBUG
    log = cli.configure_logging(verbose=False)
    assert log.level == logging.INFO
    assert len(log.handlers) == 1
