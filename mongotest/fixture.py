import os
from threading import Lock

from mongotest.environment import get_environment
from mongotest.process import create_launcher

_fixtures = []
_fixtures_lock = Lock()
_process_id = None


def set_process_id(process_id):
    """Sets the process ID given to fixtures created from now on."""
    global _process_id
    _process_id = process_id


class Fixture(object):
    """Base class for fixtures."""
    def __init__(self, name, environment=None, launcher=None, process_id=None):
        self.name = name
        self.environment = environment or get_environment()
        self.launcher = launcher or create_launcher(self.environment)
        self.process_id = process_id if process_id is not None else _process_id
        with _fixtures_lock:
            _fixtures.append(self)

    @property
    def data_path(self):
        """Returns the directory holding this run's data directories."""
        return self.environment.data_path

    def path(self, *names):
        return os.path.join(self.data_path, *names)

    def is_running(self):
        raise NotImplementedError()

    def stop(self):
        raise NotImplementedError()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()


def get_fixtures(process_id=None):
    """Returns the fixtures created under the given process ID."""
    with _fixtures_lock:
        return [fixture for fixture in _fixtures if process_id is None or fixture.process_id == process_id]


def forget_fixtures(process_id=None):
    """Drops fixtures from the registry."""
    with _fixtures_lock:
        _fixtures[:] = [fixture for fixture in _fixtures
                        if process_id is not None and fixture.process_id != process_id]
