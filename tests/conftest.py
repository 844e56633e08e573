"""Core test fixtures for dice engine tests."""

import pytest

from polydice.config import get_settings
from polydice.outcomes import OutcomeMapCache, clear_outcome_map_cache
from polydice.types import DieType, TestType
from polydice.conditions import TestConditions


@pytest.fixture(autouse=True)
def clear_outcome_cache():
    """Start every test with an empty default outcome map cache."""
    clear_outcome_map_cache()
    yield
    clear_outcome_map_cache()


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Re-read settings for every test so env patches take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def cache() -> OutcomeMapCache:
    """A private outcome map cache."""
    return OutcomeMapCache()


@pytest.fixture
def d20_at_least_15() -> TestConditions:
    """Classic d20 check against 15."""
    return TestConditions(TestType.AT_LEAST, {"target": 15}, DieType.D20)


@pytest.fixture
def d20_skill() -> TestConditions:
    """d20 skill test with both critical thresholds."""
    return TestConditions(
        TestType.SKILL,
        {"target": 12, "critical_success": 19, "critical_failure": 3},
        DieType.D20,
    )
