# sandbox/executor.py
"""
Run one synthesized program in a throwaway staging directory.

Two containments are supported (see sandbox.config):

- docker: `docker run --rm` with no network, memory/CPU/pids ceilings, a
  read-only root filesystem and only the staging directory mounted (read-only).
- local: the host interpreter in isolated mode with CPU and address-space
  rlimits. This is a degraded mode for development; it does not contain
  untrusted code in any meaningful way.

Misbehaving programs (non-zero exit, signals, timeouts, runaway output) are
reported through RawResult. Only a missing runtime binary or an unusable temp directory raise.
"""

import logging
import math
import os
import signal
import subprocess
import tempfile
import threading
import time
import uuid
from typing import List, Optional

from sandbox.config import CONTAINMENT_DOCKER, ExecutorConfig
from sandbox.types import RawResult

logger = logging.getLogger(__name__)

SCRIPT_NAME = "main.py"
CONTAINER_MOUNT = "/app"
STAGING_PREFIX = "pyide-run-"

# how long to wait for pipes to drain after a kill
_KILL_GRACE_SECONDS = 5
_POLL_SECONDS = 0.05
_CHUNK_SIZE = 64 * 1024

# Run by the local child interpreter: apply CPU and address-space limits to
# itself, then run the staged script as __main__.
_LIMITS_BOOTSTRAP = """\
import resource, runpy, sys
_script, _cpu, _mem = sys.argv[1], int(sys.argv[2]), int(sys.argv[3])
resource.setrlimit(resource.RLIMIT_CPU, (_cpu, _cpu))
resource.setrlimit(resource.RLIMIT_AS, (_mem, _mem))
sys.argv = [_script]
runpy.run_path(sys.argv[0], run_name="__main__")
"""


class ExecutorUnavailable(RuntimeError):
    """The configured runtime could not be started at all."""


def docker_command(config: ExecutorConfig, workdir: str, container_name: str) -> List[str]:
    return [
        "docker",
        "run",
        "--rm",
        "--name",
        container_name,
        "--network",
        "none",
        "--memory",
        config.docker_memory,
        "--memory-swap",
        config.docker_memory,
        "--cpus",
        config.docker_cpus,
        "--pids-limit",
        str(config.docker_pids_limit),
        "--read-only",
        "--cap-drop",
        "ALL",
        "--security-opt",
        "no-new-privileges",
        "-v",
        f"{workdir}:{CONTAINER_MOUNT}:ro",
        "-w",
        CONTAINER_MOUNT,
        config.docker_image,
        "python",
        f"{CONTAINER_MOUNT}/{SCRIPT_NAME}",
    ]


def local_command(config: ExecutorConfig, workdir: str, timeout_ms: int) -> List[str]:
    script = os.path.join(workdir, SCRIPT_NAME)
    if os.name != "posix":
        return [config.python_executable, "-I", script]
    # the child sets its own rlimits before running the script, so nothing runs
    # in the forked server process between fork and exec
    cpu_seconds = int(math.ceil(timeout_ms / 1000.0)) + 1
    memory_bytes = config.local_memory_mb * 1024 * 1024
    return [
        config.python_executable,
        "-I",
        "-c",
        _LIMITS_BOOTSTRAP,
        script,
        str(cpu_seconds),
        str(memory_bytes),
    ]


def _local_env(workdir: str) -> dict:
    # host secrets stay out of the child
    return {
        "PATH": os.environ.get("PATH", "/usr/bin:/bin"),
        "HOME": workdir,
        "LANG": "C.UTF-8",
    }


class _OutputCollector:
    """Drains stdout and stderr on helper threads, keeping at most `limit` bytes in total."""

    def __init__(self, limit: int):
        self._limit = limit
        self._kept = 0
        self._lock = threading.Lock()
        self._chunks = {"stdout": [], "stderr": []}
        self._threads = []
        self.overflow = threading.Event()

    def start(self, proc: subprocess.Popen) -> None:
        for name, pipe in (("stdout", proc.stdout), ("stderr", proc.stderr)):
            thread = threading.Thread(target=self._drain, args=(name, pipe), daemon=True)
            thread.start()
            self._threads.append(thread)

    def _drain(self, name: str, pipe) -> None:
        with pipe:
            while True:
                chunk = pipe.read1(_CHUNK_SIZE)
                if not chunk:
                    return
                with self._lock:
                    room = self._limit - self._kept
                    if room > 0:
                        kept = chunk[:room]
                        self._chunks[name].append(kept)
                        self._kept += len(kept)
                    if len(chunk) > room:
                        self.overflow.set()

    def join(self, timeout: float) -> None:
        for thread in self._threads:
            thread.join(timeout)
            if thread.is_alive():
                logger.error("Output pipes were not released within %s s", timeout)

    def text(self, name: str) -> str:
        with self._lock:
            data = b"".join(self._chunks[name])
        return data.decode("utf-8", errors="replace")


def _kill(proc: subprocess.Popen, container_name: Optional[str]) -> None:
    if container_name is not None:
        # killing the docker client alone leaves the container running
        try:
            subprocess.run(
                ["docker", "rm", "-f", container_name],
                capture_output=True,
                text=True,
                check=False,
                timeout=_KILL_GRACE_SECONDS * 2,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error("Could not remove container %s: %s", container_name, e)
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError, AttributeError):
        proc.kill()


def execute(source: str, timeout_ms: int, config: ExecutorConfig) -> RawResult:
    """
    Write `source` to a fresh staging directory, run it under `config` and
    wait at most `timeout_ms` for it to finish.

    The process is killed early once it has written more than
    `config.max_output_bytes` to stdout and stderr together; what was kept is
    returned with `output_truncated` set.
    """
    with tempfile.TemporaryDirectory(prefix=STAGING_PREFIX) as workdir:
        with open(os.path.join(workdir, SCRIPT_NAME), "w", encoding="utf-8") as fh:
            fh.write(source)

        container_name = None
        if config.containment == CONTAINMENT_DOCKER:
            container_name = f"pyide-{uuid.uuid4().hex[:12]}"
            cmd = docker_command(config, workdir, container_name)
            env = dict(os.environ)
        else:
            cmd = local_command(config, workdir, timeout_ms)
            env = _local_env(workdir)

        started = time.monotonic()
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=workdir,
                env=env,
                start_new_session=True,
            )
        except FileNotFoundError as e:
            raise ExecutorUnavailable(f"Cannot start {cmd[0]!r}: {e}") from e

        collector = _OutputCollector(config.max_output_bytes)
        collector.start(proc)

        deadline = started + timeout_ms / 1000.0
        timed_out = False
        while True:
            try:
                proc.wait(timeout=_POLL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                pass
            if collector.overflow.is_set():
                break
            if time.monotonic() >= deadline:
                timed_out = True
                break

        killed = proc.returncode is None
        if killed:
            _kill(proc, container_name)
            try:
                proc.wait(timeout=_KILL_GRACE_SECONDS)
            except subprocess.TimeoutExpired:
                logger.error("Process %s did not exit after being killed", proc.pid)
        collector.join(_KILL_GRACE_SECONDS)

        duration_ms = int((time.monotonic() - started) * 1000)

    result = RawResult(
        stdout=collector.text("stdout"),
        stderr=collector.text("stderr"),
        returncode=None if killed else proc.returncode,
        timed_out=timed_out,
        output_truncated=collector.overflow.is_set(),
        duration_ms=duration_ms,
    )
    logger.info(
        "Executed with %s containment in %d ms (returncode=%s, timed_out=%s, output_truncated=%s)",
        config.containment,
        duration_ms,
        result.returncode,
        result.timed_out,
        result.output_truncated,
    )
    return result
