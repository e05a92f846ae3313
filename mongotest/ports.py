import errno
import os
from threading import Lock

from mongotest.environment import get_environment
from mongotest.errors import PortExhaustedError
from mongotest.logging import logger

MAX_PORT = 65535


class CounterStrategy(object):
    """Hands out ports from an increasing counter."""
    def __init__(self, base_port):
        self.next_port = base_port

    def allocate(self):
        port = self.next_port
        if port > MAX_PORT:
            raise PortExhaustedError("No ports left above {}".format(port - 1))
        self.next_port += 1
        return port

    def __str__(self):
        return 'counter from {}'.format(self.next_port)


class RegistryStrategy(object):
    """Claims ports in a directory shared by every test process on the host.

    A port belongs to whoever first creates ``<path>/<port>``. Ports claimed
    by other processes are skipped, so concurrently running test processes
    never share a port.
    """
    def __init__(self, path, base_port):
        self.path = path
        self.next_port = base_port
        if not os.path.exists(self.path):
            os.makedirs(self.path)

    def _claim(self, port):
        try:
            fd = os.open(os.path.join(self.path, str(port)), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except OSError as e:
            if e.errno == errno.EEXIST:
                return False
            raise
        with os.fdopen(fd, 'w') as f:
            f.write(str(os.getpid()))
        return True

    def allocate(self):
        while self.next_port <= MAX_PORT:
            port = self.next_port
            self.next_port += 1
            if self._claim(port):
                return port
        raise PortExhaustedError("No unclaimed ports left in {}".format(self.path))

    def __str__(self):
        return 'registry {}'.format(self.path)


class PortPool(object):
    """Append-only pool of ports."""
    def __init__(self, strategy):
        self.strategy = strategy
        self._lock = Lock()
        self._allocated = []

    @property
    def allocated(self):
        """Returns every port handed out so far."""
        return list(self._allocated)

    def allocate(self, n=1):
        """Returns n distinct ports in increasing order."""
        with self._lock:
            ports = [self.strategy.allocate() for _ in range(n)]
            self._allocated.extend(ports)
        logger.debug("Allocated ports %s", ports)
        return ports

    @classmethod
    def from_environment(cls, environment):
        """Creates a pool using the registry if the environment exposes one."""
        if environment.port_registry:
            strategy = RegistryStrategy(environment.port_registry, environment.base_port)
        else:
            strategy = CounterStrategy(environment.base_port)
        logger.debug("Allocating ports with %s", strategy)
        return cls(strategy)


_pool = None
_pool_lock = Lock()


def get_port_pool():
    """Returns the process-wide port pool, selecting its strategy on first use."""
    global _pool
    with _pool_lock:
        if _pool is None:
            _pool = PortPool.from_environment(get_environment())
        return _pool


def allocate_ports(n):
    """Allocates n ports from the process-wide pool."""
    return get_port_pool().allocate(n)
