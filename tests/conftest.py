"""Shared fixtures for the test suite."""

from __future__ import annotations

import pytest
from factories import make_png

from pageshot.models.image import OptimizationBudget

# ── Image Fixtures ──────────────────────────────────────────────


@pytest.fixture()
def small_png() -> bytes:
    """A 100x100 PNG well within every limit."""
    return make_png(100, 100)


@pytest.fixture()
def large_png() -> bytes:
    """A 2000x1500 PNG above the optimal dimension."""
    return make_png(2000, 1500, "green")


@pytest.fixture(scope="session")
def huge_png() -> bytes:
    """A 9000x6000 PNG above the hard ceiling."""
    return make_png(9000, 6000, "blue")


# ── Budget Fixtures ─────────────────────────────────────────────


@pytest.fixture()
def default_budget() -> OptimizationBudget:
    """Budget with the stock LLM limits."""
    return OptimizationBudget()


@pytest.fixture()
def tiny_budget() -> OptimizationBudget:
    """Budget small enough that noise images always miss it."""
    return OptimizationBudget(target_byte_size=1000, full_page_target_byte_size=1000)
