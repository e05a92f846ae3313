import os

import pytest

from conftest import make_environment
from fakes import FakeLauncher
from mongotest.errors import FixtureRunningError, ProcessExitError
from mongotest.process import SIGKILL, SIGTERM
from mongotest.server import ServerFixture, State, ToolFixture


def _server(environment, launcher, **kwargs):
    return ServerFixture('server', port=32000, environment=environment, launcher=launcher, **kwargs)


def test_start_wipes_data_directory(environment, launcher):
    server = _server(environment, launcher)
    os.makedirs(server.dbpath)
    with open(os.path.join(server.dbpath, 'old'), 'w') as f:
        f.write('x')

    connection = server.start()
    assert connection is launcher.connections[32000]
    assert os.path.isdir(server.dbpath)
    assert os.listdir(server.dbpath) == []
    assert server.is_running()
    assert server.state == State.RUNNING


def test_start_with_reuse_data_preserves_files(environment, launcher):
    server = _server(environment, launcher)
    os.makedirs(server.dbpath)
    with open(os.path.join(server.dbpath, 'collection.0'), 'w') as f:
        f.write('x')

    server.start(reuse_data=True)
    assert os.listdir(server.dbpath) == ['collection.0']


@pytest.mark.parametrize('reuse_data', [True, False])
def test_stale_lock_is_removed(environment, launcher, reuse_data):
    server = _server(environment, launcher)
    os.makedirs(server.dbpath)
    with open(server.lock_file, 'w') as f:
        f.write('1234')

    server.start(reuse_data=reuse_data)
    assert not os.path.exists(server.lock_file)


def test_start_twice_is_a_usage_error(environment, launcher):
    server = _server(environment, launcher)
    server.start()
    with pytest.raises(FixtureRunningError):
        server.start()
    assert len(launcher.started) == 1


def test_stop_before_start_is_a_no_op(environment, launcher):
    server = _server(environment, launcher)
    assert server.stop() is None
    assert server.state == State.NOT_STARTED
    assert launcher.started == []


def test_stop_signals_and_waits(environment, launcher):
    server = _server(environment, launcher)
    connection = server.start()
    handle = launcher.started[0]

    assert server.stop(SIGKILL) == 0
    assert handle.signals == [SIGKILL]
    assert connection.closed
    assert not server.is_running()
    assert server.state == State.STOPPED
    assert server.stop() is None
    assert handle.signals == [SIGKILL]


def test_restart_after_stop_reuses_port(environment, launcher):
    server = _server(environment, launcher)
    server.start()
    server.stop()
    server.start(reuse_data=True)
    assert server.is_running()
    assert [h.argv[h.argv.index('--port') + 1] for h in launcher.started] == ['32000', '32000']


def test_restart_keeps_data(environment, launcher):
    server = _server(environment, launcher)
    server.start()
    with open(os.path.join(server.dbpath, 'collection.0'), 'w') as f:
        f.write('x')
    server.restart()
    assert os.listdir(server.dbpath) == ['collection.0']


def test_abnormal_exit_is_surfaced_in_strict_mode(tmp_path):
    environment = make_environment(tmp_path, strict_exit=True)
    launcher = FakeLauncher(environment, exit_code=14)
    server = _server(environment, launcher)
    server.start()
    with pytest.raises(ProcessExitError) as e:
        server.stop()
    assert e.value.exit_code == 14
    assert server.state == State.STOPPED


def test_abnormal_exit_after_kill_is_expected(tmp_path):
    environment = make_environment(tmp_path, strict_exit=True)
    launcher = FakeLauncher(environment, exit_code=-9)
    server = _server(environment, launcher)
    server.start()
    assert server.stop(SIGKILL) == -9


def test_server_command_line(environment, launcher):
    server = _server(environment, launcher, overrides={'smallfiles': ''})
    server.start()
    argv = launcher.started[0].argv
    assert argv[0] == 'mongod'
    assert argv[argv.index('--dbpath') + 1] == server.dbpath
    assert argv[argv.index('--bind_ip') + 1] == '127.0.0.1'
    assert '--smallfiles' in argv
    assert server.config.port == 32000


def test_context_manager_stops_server(environment, launcher):
    with _server(environment, launcher) as server:
        server.start()
    assert not server.is_running()


def test_tool_fixture_layout(environment, launcher):
    tool = ToolFixture('dump', port=32001, environment=environment, launcher=launcher)
    assert tool.root == os.path.join(environment.data_path, 'jstests_tool_dump')
    assert tool.dbpath == tool.root + '/'
    assert tool.ext_file == tool.root + '_external/a'
    assert os.path.isdir(tool.dbpath)
    assert os.path.isdir(tool.ext)


def test_run_tool_targets_server(environment, launcher):
    tool = ToolFixture('dump', port=32001, environment=environment, launcher=launcher)
    tool.start_db()
    assert tool.run_tool('dump', '--out', tool.ext) == 0
    argv = launcher.started[-1].argv
    assert argv == ['mongodump', '--out', tool.ext, '--host', '127.0.0.1:32001']
    assert launcher.started[-1].connection is None


def test_run_tool_with_dbpath_has_no_host(environment, launcher):
    tool = ToolFixture('restore', port=32002, environment=environment, launcher=launcher)
    tool.run_tool('restore', '--dbpath', tool.dbpath, tool.ext)
    assert '--host' not in launcher.started[-1].argv


def test_run_tool_mirrors_ssl(tmp_path):
    environment = make_environment(tmp_path, use_ssl=True)
    launcher = FakeLauncher(environment)
    tool = ToolFixture('export', port=32003, environment=environment, launcher=launcher)
    tool.start()
    assert '--sslMode' in launcher.started[0].argv
    tool.run_tool('export', '--db', 'test')
    argv = launcher.started[-1].argv
    assert '--ssl' in argv
    assert argv[argv.index('--sslPEMKeyFile') + 1] == environment.server_pem
    assert argv[argv.index('--sslCAFile') + 1] == environment.ca_pem
    assert '--sslAllowInvalidHostnames' in argv
    assert argv[-2:] == ['--host', '127.0.0.1:32003']


def test_start_db_returns_collection(environment, launcher):
    tool = ToolFixture('files', port=32004, environment=environment, launcher=launcher)
    db = tool.start_db()
    assert db == {'name': 'jstests_tool_files', 'host': '127.0.0.1:32004'}
    tool.stop()
    assert tool.db is None
    assert tool.stop() is None


def test_start_db_twice_fails(environment, launcher):
    tool = ToolFixture('twice', port=32005, environment=environment, launcher=launcher)
    tool.start_db()
    with pytest.raises(FixtureRunningError):
        tool.start_db()
