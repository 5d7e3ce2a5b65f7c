from typing import Literal

from pydantic_settings import BaseSettings
from sanic.log import logger


class Config(BaseSettings):
    WEBHOOK_PATH: str = "gitbucket-webhook"

    ROOT_URL: str = ""

    CRUMB: str | None = None

    OVERRIDE_LOGGING: Literal[
        "CRITICAL",
        "FATAL",
        "ERROR",
        "WARNING",
        "WARN",
        "INFO",
        "DEBUG",
        "NOTSET",
    ] = "INFO"

    COMMENT_TIMEOUT: float = 10.0
    COMMENT_MAX_REDIRECTS: int = 3

    POLLING_LOG_NAME: str = "gitbucket-polling.log"

    STERILE: bool = False

    QUEUE_DRAIN_TIMEOUT: float = 30.0

    HEALTH_RATE_LIMIT: int = 10

    def print_config(self):
        """Print configuration values with sensitive attributes masked"""
        sensitive_attrs = {
            "CRUMB",
        }

        logger.info("=== GitBucket Bridge Configuration ===")
        for field_name, field_value in self.model_dump().items():
            if field_name in sensitive_attrs and field_value is not None:
                logger.info(f"{field_name}: ***")
            else:
                logger.info(f"{field_name}: {field_value}")
        logger.info("======================================")
