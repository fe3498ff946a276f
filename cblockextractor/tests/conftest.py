import os
import cProfile

import pytest

from cblockextractor.filesystem import FakeFile


@pytest.fixture(scope="session", autouse=True)
def maybe_profile():
    if os.environ.get("PROFILE"):
        profiler = cProfile.Profile()
        profiler.enable()
        yield  # run all tests
        profiler.disable()
        profiler.dump_stats("profile.stats")
    else:
        yield


@pytest.fixture
def source():
    def _make(*lines, name="test.c"):
        return FakeFile(name, [line + "\n" for line in lines])
    return _make
