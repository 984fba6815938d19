import sys

import pytest

from api.config import Settings
from api.main import create_app
from sandbox.config import CONTAINMENT_LOCAL, ExecutorConfig


@pytest.fixture
def local_config() -> ExecutorConfig:
    return ExecutorConfig(containment=CONTAINMENT_LOCAL, python_executable=sys.executable)


@pytest.fixture
def settings(local_config) -> Settings:
    return Settings(timeout_ms=5000, max_code_size=2048, max_test_cases=3, executor=local_config)


@pytest.fixture
def client(settings):
    app = create_app(settings)
    app.config["TESTING"] = True
    return app.test_client()
