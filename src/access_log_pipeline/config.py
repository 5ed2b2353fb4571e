"""
Configuration from the environment.

Values are read, in increasing priority, from:
  - a .env file in the working directory (never overriding real env vars)
  - process environment variables
  - a JSON secret in AWS Secrets Manager, when CONFIG_SECRET_NAME is set

Recognized keys:
  DEFAULT_REGION, OUTPUT_DIR,
  ALB_BUCKET, ALB_PREFIX,
  CF_BUCKET, CF_PREFIX, CF_DISTRIBUTION_ID,
  WAF_S3_BUCKET, WAF_S3_PREFIX
"""

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import find_dotenv, load_dotenv

from .errors import ConfigurationError
from .models import LogFormat

DEFAULT_REGION = "us-east-1"
DEFAULT_OUTPUT_DIR = "./output"


@dataclass(frozen=True)
class ServiceConfig:
    bucket: Optional[str] = None
    prefix: str = ""
    distribution_id: Optional[str] = None

    def require_bucket(self, fmt: LogFormat) -> str:
        if not self.bucket:
            raise ConfigurationError(
                f"No S3 bucket configured for {fmt.value.upper()} logs"
            )
        return self.bucket


@dataclass(frozen=True)
class AppConfig:
    region: str
    output_dir: str
    alb: ServiceConfig
    cf: ServiceConfig
    waf: ServiceConfig

    def service(self, fmt: LogFormat) -> ServiceConfig:
        return getattr(self, LogFormat(fmt).value)


def get_secret_config(secret_name: str, region: Optional[str] = None) -> Dict[str, Any]:
    secrets_client = boto3.client("secretsmanager", region_name=region)
    try:
        resp = secrets_client.get_secret_value(SecretId=secret_name)
    except (BotoCoreError, ClientError) as e:
        raise ConfigurationError(f"Failed to read secret {secret_name}: {e}") from e

    if "SecretString" in resp:
        cfg_str = resp["SecretString"]
    else:
        cfg_str = resp["SecretBinary"].decode("utf-8")

    try:
        return json.loads(cfg_str)
    except ValueError as e:
        raise ConfigurationError(f"Secret {secret_name} is not valid JSON") from e


def _empty_to_none(value: Optional[str]) -> Optional[str]:
    return value if value else None


def load_config(
    env: Optional[Mapping[str, str]] = None,
    use_dotenv: bool = True,
) -> AppConfig:
    if env is None:
        if use_dotenv:
            load_dotenv(find_dotenv(usecwd=True), override=False)
        env = os.environ

    values: Dict[str, Any] = dict(env)

    secret_name = values.get("CONFIG_SECRET_NAME")
    if secret_name:
        values.update(
            get_secret_config(secret_name, region=values.get("DEFAULT_REGION"))
        )

    return AppConfig(
        region=values.get("DEFAULT_REGION") or DEFAULT_REGION,
        output_dir=values.get("OUTPUT_DIR") or DEFAULT_OUTPUT_DIR,
        alb=ServiceConfig(
            bucket=_empty_to_none(values.get("ALB_BUCKET")),
            prefix=values.get("ALB_PREFIX") or "",
        ),
        cf=ServiceConfig(
            bucket=_empty_to_none(values.get("CF_BUCKET")),
            prefix=values.get("CF_PREFIX") or "",
            distribution_id=_empty_to_none(values.get("CF_DISTRIBUTION_ID")),
        ),
        waf=ServiceConfig(
            bucket=_empty_to_none(values.get("WAF_S3_BUCKET")),
            prefix=values.get("WAF_S3_PREFIX") or "",
        ),
    )
