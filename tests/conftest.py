"""Shared fixtures: in-memory backends and two users."""

import pytest

from finance_tracker.config import AppSettings
from finance_tracker.models import AuthUser
from finance_tracker.services.auth import InMemoryIdentityProvider
from finance_tracker.services.storage import (
    InMemoryMovementStore,
    InMemoryUserProfileStore,
)


@pytest.fixture
def store():
    return InMemoryMovementStore()


@pytest.fixture
def profiles():
    return InMemoryUserProfileStore()


@pytest.fixture
def provider():
    return InMemoryIdentityProvider()


@pytest.fixture
def alice():
    return AuthUser(uid="uid-alice", email="alice@example.com", display_name="Alice")


@pytest.fixture
def bob():
    return AuthUser(uid="uid-bob", email="bob@example.com", display_name=None)


@pytest.fixture
def app_settings():
    return AppSettings(report_page_break_y=265.0, report_top_margin=10.0)
