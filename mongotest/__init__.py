from datetime import datetime
from functools import wraps

from mongotest.cluster import ClusterFixture
from mongotest.environment import TestEnvironment, get_environment
from mongotest.errors import (
    ConsistencyError,
    FixtureRunningError,
    ProcessExitError,
    ProcessStartError,
    ShellError,
    TestError
)
from mongotest.logger import log
from mongotest.options import Arguments, NodeConfig, Role, build_node_config
from mongotest.ports import allocate_ports
from mongotest.replication import ReplicationPairFixture
from mongotest.runner import create_cluster, run
from mongotest.server import ServerFixture, State, ToolFixture
from mongotest.shell import ParallelShellLauncher, ScriptTemplate


def with_cluster(name=None, nodes=3, **kwargs):
    """Decorator for passing a cluster into a function."""
    def get_name(f):
        if name is None:
            return '{}-{}'.format(f.__name__, datetime.now().strftime('%Y%m%d%H%M%S'))
        elif callable(name):
            return '{}-{}'.format(name(), datetime.now().strftime('%Y%m%d%H%M%S'))
        return name

    def wrap(f):
        @wraps(f)
        def new_func():
            cluster = ClusterFixture(get_name(f), nodes, **kwargs)
            try:
                return f(cluster)
            finally:
                cluster.stop()
        return new_func
    return wrap
