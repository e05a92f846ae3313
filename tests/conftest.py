import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(__file__))

from fakes import FakeLauncher
from mongotest.environment import TestEnvironment


def make_environment(tmp_path, **kwargs):
    return TestEnvironment(_env_file=None, data_path=str(tmp_path / 'data'), **kwargs)


@pytest.fixture
def environment(tmp_path):
    return make_environment(tmp_path)


@pytest.fixture
def launcher(environment):
    return FakeLauncher(environment)
