# api/config.py
"""
API settings, read once from the environment at startup.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from sandbox.config import MAX_TIMEOUT_MS, ExecutorConfig, env_int

DEFAULT_TIMEOUT_MS = 10000
DEFAULT_MAX_CODE_SIZE = 100 * 1024  # 100 KB
DEFAULT_MAX_TEST_CASES = 10
# seconds allowed on top of the execution timeout for a runner round trip
DEFAULT_RUNNER_REQUEST_TIMEOUT = 30
DEFAULT_PORT = 3001

SERVICE_NAME = "Python IDE API"
VERSION = "1.0.0"


@dataclass(frozen=True)
class Settings:
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_code_size: int = DEFAULT_MAX_CODE_SIZE
    max_test_cases: int = DEFAULT_MAX_TEST_CASES
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    # when set, execution is delegated to the runner service at this URL
    runner_url: Optional[str] = None
    runner_request_timeout: int = DEFAULT_RUNNER_REQUEST_TIMEOUT
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    def __post_init__(self):
        if self.runner_url and self.timeout_ms > MAX_TIMEOUT_MS:
            raise ValueError(
                f"EXECUTION_TIMEOUT_MS must be at most {MAX_TIMEOUT_MS} when RUNNER_URL is set, "
                f"got {self.timeout_ms}"
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            timeout_ms=env_int(env, "EXECUTION_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            max_code_size=env_int(env, "MAX_CODE_SIZE", DEFAULT_MAX_CODE_SIZE),
            max_test_cases=env_int(env, "MAX_TEST_CASES", DEFAULT_MAX_TEST_CASES),
            executor=ExecutorConfig.from_env(env),
            runner_url=env.get("RUNNER_URL") or None,
            runner_request_timeout=env_int(
                env, "RUNNER_REQUEST_TIMEOUT", DEFAULT_RUNNER_REQUEST_TIMEOUT
            ),
            port=env_int(env, "PORT", DEFAULT_PORT),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def containment(self) -> str:
        return "remote" if self.runner_url else self.executor.containment

    @property
    def runner_http_timeout(self) -> float:
        return self.timeout_ms / 1000.0 + self.runner_request_timeout
