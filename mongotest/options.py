from collections import namedtuple

from mongotest.environment import get_environment
from mongotest.errors import ReservedOptionError

LOOPBACK = '127.0.0.1'
DEFAULT_OPLOG_SIZE = '40'

# Options which steer how a fixture is composed and are never passed to mongod.
LOGICAL_OPTIONS = frozenset([
    'runId',
    'env',
    'pathOpts',
    'remember',
    'noRemember',
    'appendOptions',
    'restart',
    'noCleanData',
    'cleanData',
    'startClean',
    'forceLock',
    'useLogFiles',
    'logFile',
    'useHostName',
    'useHostname',
    'noReplSet',
    'forgetPort',
    'arbiter',
    'noJournalPrealloc',
    'noJournal',
    'binVersion',
    'waitForConnect',
    'bridgeOptions',
])

# Options derived from a node's role in a replication pair.
ROLE_OPTIONS = frozenset(['master', 'slave', 'source'])


class Role(object):
    """Node role."""
    STANDALONE = 'standalone'
    MASTER = 'master'
    SLAVE = 'slave'

    @staticmethod
    def is_replicated(role):
        return role in (Role.MASTER, Role.SLAVE)


def _flag(name):
    return name if name.startswith('--') else '--' + name


class Arguments(object):
    """Ordered list of command line flags and their optional values."""
    def __init__(self, pairs=()):
        self._pairs = []
        for flag, value in pairs:
            self.add(flag, value)

    def add(self, flag, value=None):
        """Appends a flag."""
        self._pairs.append((_flag(flag), None if value is None else str(value)))
        return self

    def add_if_absent(self, flag, value=None):
        """Appends a flag unless it is already present."""
        if flag in self:
            return False
        self.add(flag, value)
        return True

    def extend(self, other):
        for flag, value in other:
            self.add(flag, value)
        return self

    def get(self, flag, default=None):
        """Returns the value of the first occurrence of a flag."""
        flag = _flag(flag)
        for name, value in self._pairs:
            if name == flag:
                return value
        return default

    def flags(self):
        return [flag for flag, _ in self._pairs]

    def to_argv(self):
        """Serializes the flags into process arguments."""
        argv = []
        for flag, value in self._pairs:
            argv.append(flag)
            if value is not None:
                argv.append(value)
        return argv

    @classmethod
    def from_overrides(cls, overrides):
        """Creates arguments from a dict of caller options, dropping logical ones.

        A value of None, '' or True gives a bare flag and False omits the flag.
        """
        arguments = cls()
        for key, value in (overrides or {}).items():
            name = key.lstrip('-')
            if name in LOGICAL_OPTIONS:
                continue
            if name in ROLE_OPTIONS:
                raise ReservedOptionError(name)
            if value is False:
                continue
            if value is None or value is True or value == '':
                arguments.add(name)
            else:
                arguments.add(name, value)
        return arguments

    def __contains__(self, flag):
        return _flag(flag) in self.flags()

    def __iter__(self):
        return iter(self._pairs)

    def __len__(self):
        return len(self._pairs)

    def __eq__(self, other):
        return isinstance(other, Arguments) and self._pairs == other._pairs

    def __repr__(self):
        return 'Arguments({!r})'.format(self._pairs)


SecurityOptions = namedtuple('SecurityOptions', ['mode', 'pem_key_file', 'ca_file'])


class NodeConfig(namedtuple('NodeConfig', ['port', 'dbpath', 'role', 'bind_all', 'arguments', 'security'])):
    """Immutable configuration of a single mongod process."""
    __slots__ = ()

    @property
    def source(self):
        """Returns the upstream address of a slave."""
        return Arguments(self.arguments).get('--source')

    def get(self, flag, default=None):
        return Arguments(self.arguments).get(flag, default)

    def flags(self):
        return [flag for flag, _ in self.arguments]

    def to_argv(self, binary='mongod'):
        return [binary] + Arguments(self.arguments).to_argv()


def _environment_arguments(environment):
    arguments = Arguments()
    if environment.no_journal:
        arguments.add('--nojournal')
    if environment.key_file:
        arguments.add('--keyFile', environment.key_file)
    if environment.use_ssl:
        arguments.add('--sslMode', 'requireSSL')
        arguments.add('--sslPEMKeyFile', environment.server_pem)
        arguments.add('--sslCAFile', environment.ca_pem)
        arguments.add('--sslWeakCertificateValidation')
    if environment.use_x509:
        arguments.add('--clusterAuthMode', 'x509')
    return arguments


def build_node_config(role, port, dbpath, overrides=None, environment=None,
                      bind_all=False, no_replication_role=False, source_port=None):
    """Derives the full mongod configuration of a node."""
    environment = environment or get_environment()
    extra = Arguments.from_overrides(overrides)

    arguments = Arguments()
    arguments.add('--port', port)
    arguments.add('--dbpath', dbpath)
    if not bind_all and '--bind_ip' not in extra and '--bind_ip_all' not in extra:
        arguments.add('--bind_ip', LOOPBACK)

    for flag, value in _environment_arguments(environment):
        if flag not in extra:
            arguments.add_if_absent(flag, value)

    if not no_replication_role:
        if role == Role.MASTER:
            arguments.add('--master')
        elif role == Role.SLAVE:
            if source_port is None:
                raise ValueError("A slave requires the port of its master")
            arguments.add('--slave')
            arguments.add('--source', '{}:{}'.format(LOOPBACK, source_port))

    if Role.is_replicated(role) and '--oplogSize' not in extra:
        arguments.add('--oplogSize', DEFAULT_OPLOG_SIZE)

    arguments.extend(extra)

    security = None
    if '--sslMode' in arguments:
        security = SecurityOptions(
            arguments.get('--sslMode'),
            arguments.get('--sslPEMKeyFile'),
            arguments.get('--sslCAFile')
        )

    return NodeConfig(port, dbpath, role, bind_all, tuple(arguments), security)
