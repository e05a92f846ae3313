import importlib
import sys
import textwrap

import pytest

from fakes import FakeLauncher
from mongotest import runner as runner_module
from mongotest.errors import TestError as FixtureError
from mongotest.fixture import get_fixtures
from mongotest.server import ServerFixture

TESTS = '''
from mongotest.runner import create_cluster

STARTED = []


def test_passes():
    cluster = create_cluster(3, environment=ENVIRONMENT, launcher=LAUNCHER)
    STARTED.append(cluster)
    assert cluster.name.startswith('test_passes-')


def test_fails():
    assert False


def helper():
    raise AssertionError('not a test')
'''


@pytest.fixture
def suite(tmp_path, monkeypatch, environment):
    package = tmp_path / 'sample_suite'
    package.mkdir()
    (package / '__init__.py').write_text('')
    (package / 'cluster_tests.py').write_text(textwrap.dedent(TESTS))
    monkeypatch.syspath_prepend(str(tmp_path))
    for name in [name for name in sys.modules if name.split('.')[0] == 'sample_suite']:
        monkeypatch.delitem(sys.modules, name)
    module = importlib.import_module('sample_suite.cluster_tests')
    module.ENVIRONMENT = environment
    module.LAUNCHER = FakeLauncher(environment)
    return module


def test_runs_tests_and_cleans_up(suite):
    assert runner_module.run(['sample_suite.cluster_tests']) == 1
    cluster = suite.STARTED[0]
    assert not cluster.is_running()
    assert suite.LAUNCHER.running() == []
    assert get_fixtures(cluster.process_id) == []


def test_runs_single_test(suite):
    assert runner_module.run(['sample_suite.cluster_tests.test_passes']) == 0


def test_scans_packages(suite):
    assert runner_module.run(['sample_suite'], fail_fast=True) == 1


def test_create_cluster_requires_running_test():
    with pytest.raises(FixtureError):
        runner_module.create_cluster(3)


def test_fixtures_created_during_run_are_tagged(environment):
    runner = runner_module.TestRunner()
    seen = []

    def test_tagged():
        seen.append(ServerFixture('tagged', port=36000, environment=environment,
                                  launcher=FakeLauncher(environment)))

    runner._find_tests = lambda path: [test_tagged]
    assert runner.run(['ignored']) == 0
    assert seen[0].process_id == runner.test_id
    assert seen[0] in get_fixtures(runner.test_id)
    runner.cleanup()
    assert get_fixtures(runner.test_id) == []
