import logging
import os
import tempfile
from typing import Iterable, Iterator, Optional

from .decompress import decompress_file
from .errors import DecompressionFailure, ObjectFetchFailure
from .models import LocalLocation, ObjectRef, RawContent, S3Location
from .storage import download_object

logger = logging.getLogger(__name__)


class Retriever:
    """
    Fetch log objects one at a time and hand back their decoded text.

    A failure on one object is logged and that object is skipped; the
    rest of the batch carries on.
    """

    def __init__(
        self,
        s3_client=None,
        log: Optional[logging.Logger] = None,
        tmp_dir: Optional[str] = None,
    ):
        self.s3_client = s3_client
        self.logger = log or logger
        self.tmp_dir = tmp_dir
        self.failed = 0

    def fetch(self, ref: ObjectRef) -> Optional[RawContent]:
        try:
            if ref.is_remote:
                data = self._fetch_remote(ref, ref.location)
            else:
                data = self._fetch_local(ref, ref.location)
        except (ObjectFetchFailure, DecompressionFailure) as e:
            self.failed += 1
            self.logger.error("Failed to fetch %s: %s", ref, e)
            return None
        except OSError as e:
            self.failed += 1
            self.logger.error("Failed to read %s: %s", ref, e)
            return None

        self.logger.info("Fetched %s (%d bytes)", ref, len(data))
        return RawContent(ref=ref, text=data.decode("utf-8", errors="replace"))

    def fetch_all(self, refs: Iterable[ObjectRef]) -> Iterator[RawContent]:
        for ref in refs:
            content = self.fetch(ref)
            if content is not None:
                yield content

    def _fetch_remote(self, ref: ObjectRef, location: S3Location) -> bytes:
        if self.s3_client is None:
            raise ObjectFetchFailure(f"No S3 client available for {location.uri}")

        self.logger.info("Downloading %s", location.uri)
        with tempfile.TemporaryDirectory(prefix="s3-object-", dir=self.tmp_dir) as work_dir:
            local_path = os.path.join(work_dir, os.path.basename(location.key) or "object")
            download_object(self.s3_client, location.bucket, location.key, local_path)
            return self._read(local_path, ref.is_gzip)

    def _fetch_local(self, ref: ObjectRef, location: LocalLocation) -> bytes:
        self.logger.info("Reading local file %s", location.path)
        if not os.path.isfile(location.path):
            raise ObjectFetchFailure(f"{location.path} does not exist")
        return self._read(location.path, ref.is_gzip)

    def _read(self, path: str, is_gzip: bool) -> bytes:
        if is_gzip:
            return decompress_file(path, log=self.logger, tmp_dir=self.tmp_dir)
        with open(path, "rb") as f_in:
            return f_in.read()
