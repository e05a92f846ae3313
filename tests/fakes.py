from mongotest.connection import Connection
from mongotest.process import ProcessHandle, ProcessLauncher


class FakeConnection(Connection):
    """Connection answering commands from canned digests."""
    def __init__(self, host, hashes=None):
        self._host = host
        self.hashes = dict(hashes or {})
        self.commands = []
        self.authenticated = False
        self.secondary_ok = False
        self.closed = False
        self.alive = True

    @property
    def host(self):
        return self._host

    def get_db(self, name):
        return {'name': name, 'host': self._host}

    def run_command(self, db, command):
        self.commands.append((db, command))
        if command == 'dbhash':
            return {'md5': self.hashes.get(db)}
        collections = command.get('collections', [])
        return {'collections': dict((c, self.hashes.get('{}.{}'.format(db, c))) for c in collections)}

    def authenticate(self):
        self.authenticated = True

    def set_secondary_ok(self):
        self.secondary_ok = True

    def ping(self):
        return self.alive

    def close(self):
        self.closed = True


class FakeHandle(ProcessHandle):
    def __init__(self, argv):
        super(FakeHandle, self).__init__(argv)
        self.exit_code = None
        self.signals = []

    def poll(self):
        return self.exit_code


class FakeLauncher(ProcessLauncher):
    """Launcher recording the programs it is asked to run."""
    def __init__(self, environment=None, exit_code=0):
        super(FakeLauncher, self).__init__(environment)
        self.exit_code = exit_code
        self.started = []
        self.connections = {}

    def connect(self, port):
        connection = FakeConnection('127.0.0.1:{}'.format(port))
        self.connections[port] = connection
        return connection

    def wait_for_start(self, handle, port):
        return self.connect(port)

    def _spawn(self, argv):
        handle = FakeHandle(argv)
        self.started.append(handle)
        return handle

    def send_signal(self, handle, sig):
        handle.signals.append(sig)
        handle.exit_code = self.exit_code

    def wait(self, handle):
        if handle.exit_code is None:
            handle.exit_code = self.exit_code
        return handle.exit_code

    def running(self):
        return [handle for handle in self.started if handle.exit_code is None]

    def argv_for_port(self, port):
        """Returns the arguments of the latest program started with the given port."""
        for handle in reversed(self.started):
            if '--port' in handle.argv and handle.argv[handle.argv.index('--port') + 1] == str(port):
                return handle.argv
        return None
