"""
Gzip decompression with fallbacks.

Tiers are tried in order and the first one to produce non-empty output
wins:

  1. gunzip -c           (external, any platform that has it)
  2. ditto -x -k         (external, macOS only)
  3. Python gzip module  (always available)

Every tier writes into a scoped temporary directory which is removed
before returning.
"""

import gzip
import logging
import os
import shutil
import subprocess
import sys
import tempfile
import zlib
from typing import Callable, List, Optional, Tuple

from .errors import DecompressionFailure

logger = logging.getLogger(__name__)

EXTERNAL_TIMEOUT_SECONDS = 300


def _run(cmd: List[str], stdout=None) -> subprocess.CompletedProcess:
    logger.debug("Running command: %s", " ".join(cmd))
    return subprocess.run(
        cmd,
        stdout=stdout if stdout is not None else subprocess.DEVNULL,
        stderr=subprocess.PIPE,
        timeout=EXTERNAL_TIMEOUT_SECONDS,
    )


def gunzip_tier(gz_path: str, work_dir: str) -> Optional[bytes]:
    if shutil.which("gunzip") is None:
        return None

    output_path = os.path.join(work_dir, "gunzip.out")
    with open(output_path, "wb") as f_out:
        result = _run(["gunzip", "-c", gz_path], stdout=f_out)

    if result.returncode != 0:
        logger.debug(
            "gunzip exited with %s: %s",
            result.returncode,
            result.stderr.decode("utf-8", errors="replace").strip(),
        )
        return None

    with open(output_path, "rb") as f_in:
        return f_in.read()


def ditto_tier(gz_path: str, work_dir: str) -> Optional[bytes]:
    """
    macOS only. `ditto -x -k` extracts PKZip archives, so a plain gzip
    member usually makes it exit non-zero and the chain moves on. It only
    produces output when the extracted file is named like the .gz minus
    its suffix.
    """
    if sys.platform != "darwin" or shutil.which("ditto") is None:
        return None

    extract_dir = os.path.join(work_dir, "ditto")
    os.makedirs(extract_dir, exist_ok=True)
    result = _run(["ditto", "-x", "-k", "--sequesterRsrc", gz_path, extract_dir])
    if result.returncode != 0:
        return None

    base_name = os.path.basename(gz_path)
    if base_name.endswith(".gz"):
        base_name = base_name[: -len(".gz")]
    extracted = os.path.join(extract_dir, base_name)
    if not os.path.isfile(extracted):
        return None

    with open(extracted, "rb") as f_in:
        return f_in.read()


def gzip_module_tier(gz_path: str, work_dir: str) -> Optional[bytes]:
    with open(gz_path, "rb") as f_in:
        return gzip.decompress(f_in.read())


DecompressionTier = Callable[[str, str], Optional[bytes]]

DECOMPRESSION_TIERS: List[Tuple[str, DecompressionTier]] = [
    ("gunzip", gunzip_tier),
    ("ditto", ditto_tier),
    ("gzip", gzip_module_tier),
]


def decompress_file(
    gz_path: str,
    log: Optional[logging.Logger] = None,
    tmp_dir: Optional[str] = None,
) -> bytes:
    """
    Decompress a local .gz file through DECOMPRESSION_TIERS.

    Raises DecompressionFailure when every tier fails or yields nothing.
    """
    log = log or logger
    errors: List[str] = []

    with tempfile.TemporaryDirectory(prefix="decompress-", dir=tmp_dir) as work_dir:
        for name, tier in DECOMPRESSION_TIERS:
            try:
                content = tier(gz_path, work_dir)
            except (OSError, EOFError, zlib.error, subprocess.SubprocessError) as e:
                log.warning("%s decompression failed for %s: %s", name, gz_path, e)
                errors.append(f"{name}: {e}")
                continue

            if content:
                log.debug("Decompressed %s with %s (%d bytes)", gz_path, name, len(content))
                return content

            log.debug("%s produced no output for %s", name, gz_path)

    raise DecompressionFailure(
        f"Could not decompress {gz_path}"
        + (f" ({'; '.join(errors)})" if errors else "")
    )

