import asyncio

import pytest

from voice_interview.interview.testing import create_mock_interview_setup


@pytest.fixture
def mock_setup(tmp_path):
    """Factory for mock setups rooted in the test's temp directory."""
    def factory(**kwargs):
        kwargs.setdefault("workdir", str(tmp_path))
        return create_mock_interview_setup(**kwargs)
    return factory


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    def runner(coro):
        return asyncio.run(coro)
    return runner
