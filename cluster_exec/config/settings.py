"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

SSH_BACKENDS = ("openssh", "asyncssh")


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Retry policy for generate_and_execute_command
    max_attempts: int = field(default=5)
    retry_delay: float = field(default=1.0)

    # Fan-out; 0 means one task per command with no cap
    max_concurrency: int = field(default=0)

    # Transport
    ssh_backend: str = field(default="openssh")
    max_pool_size: int = field(default=100)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)
    log_file: str | None = field(default=None)

    # Topology
    coordinator_data_dir: str | None = field(default=None)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            max_attempts=max(1, cls._get_int("CLUSTER_EXEC_MAX_ATTEMPTS", 5)),
            retry_delay=max(0.0, cls._get_float("CLUSTER_EXEC_RETRY_DELAY", 1.0)),
            max_concurrency=max(0, cls._get_int("CLUSTER_EXEC_MAX_CONCURRENCY", 0)),
            ssh_backend=cls._get_ssh_backend(),
            max_pool_size=cls._get_int("CLUSTER_EXEC_POOL_SIZE", 100),
            log_level=os.getenv("CLUSTER_EXEC_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("CLUSTER_EXEC_LOG_COLORS", True),
            log_file=os.getenv("CLUSTER_EXEC_LOG_FILE") or None,
            coordinator_data_dir=os.getenv("COORDINATOR_DATA_DIRECTORY") or None,
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Get float from environment, falling back to default."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float for %s: %s, using default %s", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_ssh_backend() -> str:
        """Get SSH backend from environment with validation.

        Returns:
            "openssh" or "asyncssh"
        """
        backend = os.getenv("CLUSTER_EXEC_SSH_BACKEND", "").lower()
        if backend in SSH_BACKENDS:
            return backend
        if backend:
            logger.warning("Unknown SSH backend %s, using openssh", backend)
        return "openssh"
