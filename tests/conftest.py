import pytest

from sapwood import flush, set_scheduler


@pytest.fixture(autouse=True)
def _drain_queue():
    """Leave no queued notifications or custom scheduler behind."""
    yield
    flush()
    set_scheduler(None)
