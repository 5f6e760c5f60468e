"""Tests for the tile job lifecycle."""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))  # noqa: E402

from tilefarm.errors import InvalidTransitionError  # noqa: E402
from tilefarm.models import TileJob, TileStatus  # noqa: E402


@pytest.fixture
def job():
    return TileJob(x=1, y=0, tile_size=4, payload="scene")


def test_job_goes_pending_in_flight_completed(job):
    assert job.status == TileStatus.PENDING
    assert job.assigned_endpoint is None

    job.mark_in_flight("https://w0.example")
    assert job.status == TileStatus.IN_FLIGHT
    assert job.assigned_endpoint == "https://w0.example"
    assert not job.terminal

    job.mark_completed()
    assert job.status == TileStatus.COMPLETED
    assert job.terminal


def test_failed_job_keeps_error(job):
    job.mark_in_flight("https://w0.example")
    job.mark_failed("HTTP 503")
    assert job.status == TileStatus.FAILED
    assert job.error == "HTTP 503"
    assert job.terminal


def test_pending_job_cannot_finish(job):
    with pytest.raises(InvalidTransitionError):
        job.mark_completed()
    with pytest.raises(InvalidTransitionError):
        job.mark_failed("boom")


def test_terminal_states_are_final(job):
    job.mark_in_flight("https://w0.example")
    job.mark_completed()

    with pytest.raises(InvalidTransitionError):
        job.mark_failed("late failure")
    with pytest.raises(InvalidTransitionError):
        job.mark_in_flight("https://w1.example")
    assert job.status == TileStatus.COMPLETED
    assert job.assigned_endpoint == "https://w0.example"


def test_request_body_shape(job):
    assert job.request_body("filename") == {
        "x": 1,
        "y": 0,
        "tile_size": 4,
        "filename": "scene",
    }
