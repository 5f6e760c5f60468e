"""Tests for round-robin endpoint selection."""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))  # noqa: E402

from tilefarm.errors import ConfigurationError  # noqa: E402
from tilefarm.pool import EndpointPool  # noqa: E402


def test_rotation_sequence_for_three_endpoints():
    """Seven dispatches over three endpoints go 0,1,2,0,1,2,0."""
    endpoints = ["https://w0.example", "https://w1.example", "https://w2.example"]
    pool = EndpointPool(endpoints)

    assigned = [endpoints.index(pool.next()) for _ in range(7)]

    assert assigned == [0, 1, 2, 0, 1, 2, 0]
    assert pool.cursor == 1


@pytest.mark.parametrize("size", [1, 2, 4, 5])
def test_each_window_of_k_dispatches_covers_every_endpoint(size):
    endpoints = [f"https://w{i}.example" for i in range(size)]
    pool = EndpointPool(endpoints)

    first = [pool.next() for _ in range(size)]
    second = [pool.next() for _ in range(size)]

    assert sorted(first) == sorted(endpoints)
    assert first == second


def test_no_back_to_back_repeats_with_several_endpoints():
    pool = EndpointPool(["a", "b"])
    picks = [pool.next() for _ in range(6)]
    assert all(prev != cur for prev, cur in zip(picks, picks[1:]))


def test_single_endpoint_always_returned():
    pool = EndpointPool(["https://only.example"])
    assert {pool.next() for _ in range(5)} == {"https://only.example"}


def test_endpoints_are_normalised():
    pool = EndpointPool(["  https://w0.example/ ", "https://w1.example"])
    assert pool.endpoints == ("https://w0.example", "https://w1.example")
    assert len(pool) == 2


def test_empty_pool_is_configuration_error():
    with pytest.raises(ConfigurationError):
        EndpointPool([])


def test_blank_endpoint_is_configuration_error():
    with pytest.raises(ConfigurationError):
        EndpointPool(["https://w0.example", "   "])
