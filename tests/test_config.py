import pytest

from api.config import Settings
from sandbox.config import CONTAINMENT_DOCKER, ExecutorConfig


def test_defaults_use_docker():
    settings = Settings.from_env({})

    assert settings.timeout_ms == 10000
    assert settings.max_code_size == 100 * 1024
    assert settings.max_test_cases == 10
    assert settings.executor.containment == CONTAINMENT_DOCKER
    assert settings.executor.docker_image == "python:3.12-alpine"
    assert settings.executor.docker_memory == "100m"
    assert not settings.executor.is_degraded
    assert settings.containment == "docker"
    assert settings.executor.max_output_bytes == 1024 * 1024


def test_environment_overrides():
    settings = Settings.from_env(
        {
            "EXECUTION_TIMEOUT_MS": "2500",
            "MAX_CODE_SIZE": "512",
            "MAX_TEST_CASES": "4",
            "CONTAINMENT": "LOCAL",
            "DOCKER_CPUS": "0.5",
            "RUNNER_URL": "http://runner:5000/run",
        }
    )

    assert settings.timeout_ms == 2500
    assert settings.max_code_size == 512
    assert settings.max_test_cases == 4
    assert settings.executor.is_degraded
    assert settings.executor.docker_cpus == "0.5"
    assert settings.containment == "remote"


@pytest.mark.parametrize(
    "env",
    [
        {"CONTAINMENT": "chroot"},
        {"EXECUTION_TIMEOUT_MS": "soon"},
        {"MAX_TEST_CASES": "0"},
        {"MAX_OUTPUT_BYTES": "-1"},
        {"RUNNER_URL": "http://runner:5000/run", "EXECUTION_TIMEOUT_MS": "60001"},
    ],
)
def test_invalid_environment(env):
    with pytest.raises(ValueError):
        Settings.from_env(env)


def test_unknown_containment_is_rejected_directly():
    with pytest.raises(ValueError):
        ExecutorConfig(containment="none")


def test_output_limit_from_environment():
    config = ExecutorConfig.from_env({"MAX_OUTPUT_BYTES": "4096"})

    assert config.max_output_bytes == 4096


def test_runner_http_timeout_outlasts_the_execution():
    settings = Settings.from_env(
        {
            "EXECUTION_TIMEOUT_MS": "60000",
            "RUNNER_REQUEST_TIMEOUT": "15",
            "RUNNER_URL": "http://runner:5000/run",
        }
    )

    assert settings.runner_http_timeout == 75.0


def test_long_timeout_is_fine_without_a_runner():
    assert Settings.from_env({"EXECUTION_TIMEOUT_MS": "120000"}).timeout_ms == 120000
