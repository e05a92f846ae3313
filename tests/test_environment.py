import pytest
from pydantic import ValidationError

from mongotest import environment as environment_module
from mongotest.environment import get_environment, set_environment


def _read(**kwargs):
    return environment_module.TestEnvironment(_env_file=None, **kwargs)


def test_defaults():
    environment = _read()
    assert environment.base_port == 31000
    assert environment.port_registry is None
    assert environment.launcher == 'subprocess'
    assert not environment.requires_authentication
    assert environment.binary('mongod') == 'mongod'


def test_reads_prefixed_variables(monkeypatch):
    monkeypatch.setenv('MONGOTEST_USE_SSL', 'true')
    monkeypatch.setenv('MONGOTEST_KEY_FILE', 'jstests/libs/key1')
    monkeypatch.setenv('MONGOTEST_BASE_PORT', '20000')
    monkeypatch.setenv('MONGOTEST_BIN_PATH', '/opt/mongo/bin')
    environment = _read()
    assert environment.use_ssl
    assert environment.key_file == 'jstests/libs/key1'
    assert environment.base_port == 20000
    assert environment.requires_authentication
    assert environment.binary('mongod') == '/opt/mongo/bin/mongod'


def test_environment_is_frozen():
    environment = _read()
    with pytest.raises(ValidationError):
        environment.use_ssl = True


def test_unknown_launcher_is_rejected():
    with pytest.raises(ValidationError):
        _read(launcher='ssh')


def test_environment_is_read_once():
    previous = get_environment()
    try:
        environment = _read(auth=True)
        set_environment(environment)
        assert get_environment() is environment
        assert get_environment() is environment
    finally:
        set_environment(previous)
