"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any settings import, so every test
runs with a known JWT secret and admin account and without Supabase,
Resend, OpenAI or DataForSEO credentials.
"""

import os

import bcrypt

from tests.constants import TEST_ADMIN_PASSWORD, TEST_ADMIN_USERNAME, TEST_JWT_SECRET

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ["AUTH_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["AUTH_ADMIN_CREDENTIALS"] = "{}:{}".format(
    TEST_ADMIN_USERNAME,
    bcrypt.hashpw(TEST_ADMIN_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode(),
)
for _name in (
    "LLM_API_KEY",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "EMAIL_API_KEY",
    "DATAFORSEO_LOGIN",
    "DATAFORSEO_PASSWORD",
    "APP_TRUST_PROXY_HEADERS",
    "APP_CORS_ORIGINS",
):
    os.environ.pop(_name, None)

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from arqsite.core.app_factory import create_app  # noqa: E402
from arqsite.core.dependencies import (  # noqa: E402
    get_email_client,
    get_keyword_client,
    get_llm_client,
    get_optional_data_store,
)
from tests.fakes import FakeDataStore, FakeEmailClient  # noqa: E402


@pytest.fixture
def store() -> FakeDataStore:
    return FakeDataStore()


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture
def llm():
    """No LLM by default; override in a module to exercise AI paths."""
    return None


@pytest.fixture
def keyword_client():
    return None


@pytest.fixture
def app(store, email_client, llm, keyword_client) -> FastAPI:
    """Fresh application with in-memory collaborators.

    Each test gets its own rate limiter and session authority.
    """
    application = create_app()
    application.dependency_overrides[get_optional_data_store] = lambda: store
    application.dependency_overrides[get_email_client] = lambda: email_client
    application.dependency_overrides[get_llm_client] = lambda: llm
    application.dependency_overrides[get_keyword_client] = lambda: keyword_client
    return application


@pytest.fixture
def client(app: FastAPI):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client: TestClient) -> TestClient:
    """Client holding a valid admin session cookie."""
    response = client.post(
        "/api/admin/login",
        json={"username": TEST_ADMIN_USERNAME, "password": TEST_ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    return client
