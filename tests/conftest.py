import pytest
from pathlib import Path

import sample_jobs
from jobchain.ui.console import Console, set_console


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch) -> Path:
    """
    Runs the test inside an empty temporary directory, so DOT and stats
    files written by the driver land there.
    """
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def events():
    """The lifecycle log of sample_jobs.ChainJob, empty at the start of each test."""
    sample_jobs.EVENTS.clear()
    yield sample_jobs.EVENTS
    sample_jobs.EVENTS.clear()


@pytest.fixture(autouse=True)
def quiet_console():
    """A fresh non-debug console for every test."""
    set_console(Console(debug=False))
