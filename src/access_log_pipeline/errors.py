"""
Exceptions raised across the pipeline.

Only InvalidTimeFormat, ConfigurationError and BucketNotFound are meant to
abort a run; the rest are caught at the object or line boundary.
"""


class LogPipelineError(Exception):
    pass


class InvalidTimeFormat(LogPipelineError):
    pass


class InvalidTimeRange(InvalidTimeFormat):
    pass


class ConfigurationError(LogPipelineError):
    pass


class ObjectListingFailure(LogPipelineError):
    def __init__(self, bucket: str, prefix: str, reason: str):
        super().__init__(f"Failed to list s3://{bucket}/{prefix}: {reason}")
        self.bucket = bucket
        self.prefix = prefix


class BucketNotFound(ObjectListingFailure):
    def __init__(self, bucket: str, prefix: str = ""):
        super().__init__(bucket, prefix, "bucket does not exist")


class ObjectFetchFailure(LogPipelineError):
    pass


class DecompressionFailure(LogPipelineError):
    pass


class LineParseFailure(LogPipelineError):
    pass
