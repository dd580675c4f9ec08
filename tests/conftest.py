"""Shared fixtures: a fresh sandbox root, its config, and an HTTP client."""

import pytest
from fastapi.testclient import TestClient

from remote_executor.app import create_app
from remote_executor.config import GatewayConfig
from remote_executor.dispatcher import Dispatcher
from remote_executor.sandbox import Sandbox

SECRET = "s3cret"


@pytest.fixture
def sandbox_root(tmp_path):
    root = tmp_path / "sandbox"
    root.mkdir()
    return root


@pytest.fixture
def sandbox(sandbox_root):
    return Sandbox(sandbox_root)


@pytest.fixture
def config(sandbox_root):
    return GatewayConfig(secret_token=SECRET, base_dir=sandbox_root, port=3000)


@pytest.fixture
def dispatcher(sandbox):
    return Dispatcher(sandbox, SECRET)


@pytest.fixture
def client(config):
    with TestClient(create_app(config)) as c:
        yield c
