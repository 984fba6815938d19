# sandbox/config.py
"""
Executor configuration read from the environment.

Both the API process and the standalone runner service build their executor
settings through ExecutorConfig.from_env(), so a deployment only has to set the
variables once.
"""

import os
import sys
from dataclasses import dataclass
from typing import Mapping, Optional

CONTAINMENT_DOCKER = "docker"
CONTAINMENT_LOCAL = "local"
CONTAINMENTS = (CONTAINMENT_DOCKER, CONTAINMENT_LOCAL)

DEFAULT_DOCKER_IMAGE = "python:3.12-alpine"
DEFAULT_DOCKER_MEMORY = "100m"
DEFAULT_DOCKER_CPUS = "1.0"
DEFAULT_DOCKER_PIDS_LIMIT = 64
DEFAULT_LOCAL_MEMORY_MB = 256
DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024  # 1 MiB of stdout + stderr

# longest execution the runner service accepts
MAX_TIMEOUT_MS = 60000


def env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class ExecutorConfig:
    """How a synthesized program is contained while it runs."""

    containment: str = CONTAINMENT_DOCKER
    docker_image: str = DEFAULT_DOCKER_IMAGE
    docker_memory: str = DEFAULT_DOCKER_MEMORY
    docker_cpus: str = DEFAULT_DOCKER_CPUS
    docker_pids_limit: int = DEFAULT_DOCKER_PIDS_LIMIT
    local_memory_mb: int = DEFAULT_LOCAL_MEMORY_MB
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    python_executable: str = sys.executable

    def __post_init__(self):
        if self.containment not in CONTAINMENTS:
            raise ValueError(
                f"containment must be one of {', '.join(CONTAINMENTS)}, got {self.containment!r}"
            )

    @property
    def is_degraded(self) -> bool:
        # local mode runs untrusted code on the host itself
        return self.containment == CONTAINMENT_LOCAL

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ExecutorConfig":
        env = os.environ if env is None else env
        return cls(
            containment=env.get("CONTAINMENT", CONTAINMENT_DOCKER).strip().lower(),
            docker_image=env.get("DOCKER_IMAGE", DEFAULT_DOCKER_IMAGE),
            docker_memory=env.get("DOCKER_MEMORY", DEFAULT_DOCKER_MEMORY),
            docker_cpus=env.get("DOCKER_CPUS", DEFAULT_DOCKER_CPUS),
            docker_pids_limit=env_int(env, "DOCKER_PIDS_LIMIT", DEFAULT_DOCKER_PIDS_LIMIT),
            local_memory_mb=env_int(env, "LOCAL_MEMORY_MB", DEFAULT_LOCAL_MEMORY_MB),
            max_output_bytes=env_int(env, "MAX_OUTPUT_BYTES", DEFAULT_MAX_OUTPUT_BYTES),
            python_executable=env.get("PYTHON_EXECUTABLE", sys.executable),
        )
