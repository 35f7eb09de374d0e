import logging
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

_config_logger = logging.getLogger(__name__)

_PACKAGE_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _PACKAGE_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (prefix ``MOCKDB_``)."""

    # Find requests without an explicit (non-zero) limit get this page size
    default_limit: int = 100

    # Forces DEBUG output for the engine loggers (request, ops, matches, includes)
    debug_db: bool = False

    # Logging: per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_engine: str = "WARNING"        # query / update / include engines
    log_level_requests: str = "INFO"         # request lifecycle

    model_config = {
        "env_prefix": "MOCKDB_",
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    def model_post_init(self, __context: object) -> None:
        """Reject a non-positive page size instead of silently returning nothing."""
        if self.default_limit <= 0:
            _config_logger.warning(
                "Ignoring non-positive default_limit=%d, using 100", self.default_limit
            )
            object.__setattr__(self, "default_limit", 100)


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance, reads .env once."""
    return Settings()
