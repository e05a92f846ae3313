import os

from mongotest.errors import FixtureRunningError, ProcessExitError
from mongotest.fixture import Fixture
from mongotest.logger import log
from mongotest.logging import logger
from mongotest.options import LOOPBACK, Role, build_node_config
from mongotest.ports import allocate_ports
from mongotest.process import SIGTERM
from mongotest.utils import make_dirs, remove_file, reset_dbpath

LOCK_FILE = 'mongod.lock'


class State(object):
    """Server fixture state."""
    NOT_STARTED = 'not started'
    RUNNING = 'running'
    STOPPED = 'stopped'


class ServerFixture(Fixture):
    """A single mongod process.

    The data directory is wiped on start unless reuse_data is set, and a lock
    file left behind by a crashed process is always removed before spawning.
    """
    def __init__(self, name, port=None, dbpath=None, overrides=None, role=Role.STANDALONE,
                 bind_all=False, source_port=None, **kwargs):
        super(ServerFixture, self).__init__(name, **kwargs)
        self.port = port if port is not None else allocate_ports(1)[0]
        self.dbpath = dbpath or self.path(name)
        self.overrides = dict(overrides or {})
        self.role = role
        self.bind_all = bind_all
        self.source_port = source_port
        self.state = State.NOT_STARTED
        self.config = None
        self._handle = None

    @property
    def host(self):
        return '{}:{}'.format(LOOPBACK, self.port)

    @property
    def lock_file(self):
        return os.path.join(self.dbpath, LOCK_FILE)

    @property
    def connection(self):
        """Returns the connection made when the server started."""
        return self._handle.connection if self._handle is not None else None

    def options(self, overrides=None, no_replication_role=False):
        """Builds the configuration the server starts with."""
        return build_node_config(
            self.role,
            self.port,
            self.dbpath,
            overrides if overrides is not None else self.overrides,
            self.environment,
            bind_all=self.bind_all,
            no_replication_role=no_replication_role,
            source_port=self.source_port
        )

    def is_running(self):
        return self._handle is not None

    def start(self, reuse_data=False, config=None):
        """Starts the server and returns a connection to it."""
        if self._handle is not None:
            logger.error("Fixture %s is already running on port %d", self.name, self.port)
            raise FixtureRunningError(self.name)

        config = config or self.options()
        remove_file(self.lock_file)
        if reuse_data:
            make_dirs(self.dbpath)
        else:
            reset_dbpath(self.dbpath)

        logger.info("Starting %s on port %d", self.name, self.port)
        binary = self.environment.binary(self.environment.mongod_binary)
        self._handle = self.launcher.start_process(config.to_argv(binary))
        self.config = config
        self.state = State.RUNNING
        return self._handle.connection

    def restart(self):
        """Stops the server and starts it again on the same data."""
        self.stop()
        return self.start(reuse_data=True)

    def stop(self, signal=SIGTERM):
        """Stops the server and waits for it to exit, returning its exit code."""
        if self._handle is None:
            return None

        handle, self._handle = self._handle, None
        logger.info("Stopping %s with signal %s", self.name, signal)
        if handle.connection is not None:
            handle.connection.close()
        self.launcher.send_signal(handle, signal)
        exit_code = self.launcher.wait(handle)
        self.state = State.STOPPED

        if exit_code != 0 and signal == SIGTERM:
            logger.error("%s exited with code %s after %s", self.name, exit_code, signal)
            if self.environment.strict_exit:
                raise ProcessExitError(self.name, exit_code)
        return exit_code

    def __str__(self):
        return '{} ({}, {})'.format(self.name, self.host, self.state)


class ToolFixture(ServerFixture):
    """A server against which the command line tools are run."""
    def __init__(self, name, overrides=None, **kwargs):
        self.base_name = 'jstests_tool_' + name
        super(ToolFixture, self).__init__(name, overrides=overrides, **kwargs)
        self.root = self.path(self.base_name)
        self.dbpath = self.root + '/'
        self.ext = self.root + '_external/'
        self.ext_file = self.ext + 'a'
        self.db = None
        reset_dbpath(self.dbpath)
        reset_dbpath(self.ext)

    def start_db(self, collection=None):
        """Starts the server and returns the fixture's database or one of its collections."""
        self.start()
        self.db = self.connection.get_db(self.base_name)
        if collection:
            return self.db[collection]
        return self.db

    def stop(self, signal=SIGTERM):
        if not self.is_running():
            return None
        exit_code = super(ToolFixture, self).stop(signal)
        self.db = None
        log.completed(self.name)
        return exit_code

    def tool_arguments(self, tool_name, *args):
        """Returns the command line of a tool targeting this server."""
        argv = [self.environment.binary('mongo' + tool_name)]
        argv.extend(str(arg) for arg in args)

        security = (self.config or self.options()).security
        if security is not None:
            argv.extend([
                '--ssl',
                '--sslPEMKeyFile', security.pem_key_file,
                '--sslCAFile', security.ca_file,
                '--sslAllowInvalidHostnames'
            ])

        if '--dbpath' not in args:
            argv.extend(['--host', self.host])
        return argv

    def run_tool(self, tool_name, *args):
        """Runs a tool to completion and returns its exit code."""
        argv = self.tool_arguments(tool_name, *args)
        handle = self.launcher.start_process(argv, no_connect=True)
        exit_code = self.launcher.wait(handle)
        logger.info("%s exited with code %s", handle.name, exit_code)
        return exit_code
