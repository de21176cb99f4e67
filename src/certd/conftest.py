import pytest
from fastapi.testclient import TestClient

from src.certd.ca import create_ca
from src.certd.config import Config
from src.certd.main import create_app

TEST_USER = "admin"
TEST_PASSWORD = "password"


@pytest.fixture(scope="session")
def ca():
    """整个测试会话共用一个根 CA，避免重复生成 RSA 密钥。"""
    return create_ca()


@pytest.fixture
def settings():
    return Config(user=TEST_USER, password=TEST_PASSWORD, listen="127.0.0.1")


@pytest.fixture
def client(ca, settings):
    return TestClient(create_app(ca, settings))
