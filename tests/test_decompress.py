import gzip
import os
import subprocess

import pytest

from access_log_pipeline import decompress
from access_log_pipeline.errors import DecompressionFailure

TEXT = "line one\nline two\n"


@pytest.fixture
def gz_file(tmp_path):
    path = tmp_path / "input" / "sample.log.gz"
    path.parent.mkdir()
    path.write_bytes(gzip.compress(TEXT.encode("utf-8")))
    return str(path)


@pytest.fixture
def work_root(tmp_path):
    root = tmp_path / "work"
    root.mkdir()
    return root


def test_decompress_file(gz_file, work_root):
    assert decompress.decompress_file(gz_file, tmp_dir=str(work_root)) == TEXT.encode("utf-8")
    assert os.listdir(work_root) == []


def test_falls_back_to_gzip_module_without_external_tools(monkeypatch, gz_file, work_root):
    monkeypatch.setattr(decompress.shutil, "which", lambda name: None)

    def no_subprocess(*args, **kwargs):
        raise AssertionError("external command should not run")

    monkeypatch.setattr(decompress.subprocess, "run", no_subprocess)

    assert decompress.decompress_file(gz_file, tmp_dir=str(work_root)) == TEXT.encode("utf-8")
    assert os.listdir(work_root) == []


def test_falls_back_when_gunzip_fails(monkeypatch, gz_file, work_root):
    def failing_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 1, stdout=None, stderr=b"gunzip: broken")

    monkeypatch.setattr(decompress.shutil, "which", lambda name: "/usr/bin/" + name)
    monkeypatch.setattr(decompress.subprocess, "run", failing_run)

    assert decompress.decompress_file(gz_file, tmp_dir=str(work_root)) == TEXT.encode("utf-8")


def test_falls_back_when_tier_raises(monkeypatch, gz_file, work_root):
    def broken(gz_path, work_dir):
        raise OSError("tool exploded")

    monkeypatch.setattr(
        decompress,
        "DECOMPRESSION_TIERS",
        [("broken", broken), ("empty", lambda p, w: b""), ("gzip", decompress.gzip_module_tier)],
    )

    assert decompress.decompress_file(gz_file, tmp_dir=str(work_root)) == TEXT.encode("utf-8")


def test_all_tiers_fail(monkeypatch, tmp_path, work_root):
    monkeypatch.setattr(decompress.shutil, "which", lambda name: None)
    bad = tmp_path / "bad.log.gz"
    bad.write_bytes(b"definitely not gzip")

    with pytest.raises(DecompressionFailure):
        decompress.decompress_file(str(bad), tmp_dir=str(work_root))
    assert os.listdir(work_root) == []



def test_ditto_tier_reads_extracted_file(monkeypatch, gz_file, work_root):
    calls = []

    def fake_run(cmd, stdout=None):
        calls.append(cmd)
        extract_dir = cmd[-1]
        with open(os.path.join(extract_dir, "sample.log"), "wb") as f_out:
            f_out.write(TEXT.encode("utf-8"))
        return subprocess.CompletedProcess(cmd, 0, stdout=None, stderr=b"")

    monkeypatch.setattr(decompress.sys, "platform", "darwin")
    monkeypatch.setattr(decompress.shutil, "which", lambda name: "/usr/bin/" + name)
    monkeypatch.setattr(decompress, "_run", fake_run)

    assert decompress.ditto_tier(gz_file, str(work_root)) == TEXT.encode("utf-8")
    assert calls[0][:3] == ["ditto", "-x", "-k"]


def test_ditto_tier_skipped_off_macos(monkeypatch, gz_file, work_root):
    def no_run(cmd, stdout=None):
        raise AssertionError("ditto should not run")

    monkeypatch.setattr(decompress.sys, "platform", "linux")
    monkeypatch.setattr(decompress, "_run", no_run)

    assert decompress.ditto_tier(gz_file, str(work_root)) is None


def test_ditto_tier_non_zero_exit_yields_nothing(monkeypatch, gz_file, work_root):
    monkeypatch.setattr(decompress.sys, "platform", "darwin")
    monkeypatch.setattr(decompress.shutil, "which", lambda name: "/usr/bin/" + name)
    monkeypatch.setattr(
        decompress,
        "_run",
        lambda cmd, stdout=None: subprocess.CompletedProcess(cmd, 1, stdout=None, stderr=b"not a zip"),
    )

    assert decompress.ditto_tier(gz_file, str(work_root)) is None
