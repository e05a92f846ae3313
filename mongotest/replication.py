from mongotest.fixture import Fixture
from mongotest.logger import log
from mongotest.logging import logger
from mongotest.options import Role
from mongotest.ports import allocate_ports
from mongotest.process import SIGTERM
from mongotest.server import ServerFixture


class ReplicationPairFixture(Fixture):
    """A master and a slave replicating from it."""
    def __init__(self, name, ports=None, **kwargs):
        super(ReplicationPairFixture, self).__init__(name, **kwargs)
        self.ports = list(ports) if ports is not None else allocate_ports(2)
        self.master = self._member(True)
        self.slave = self._member(False)

    def _member(self, master):
        return ServerFixture(
            '{}-{}'.format(self.name, 'master' if master else 'slave'),
            port=self.port(master),
            dbpath=self.path(master),
            role=Role.MASTER if master else Role.SLAVE,
            environment=self.environment,
            launcher=self.launcher,
            process_id=self.process_id
        )

    def port(self, master):
        """Returns the port of the master or the slave."""
        return self.ports[0] if master else self.ports[1]

    def path(self, master):
        """Returns the data directory of the master or the slave."""
        return super(ReplicationPairFixture, self).path(
            '{}-{}'.format(self.name, 'master' if master else 'slave'))

    def member(self, master):
        return self.master if master else self.slave

    def options(self, master, overrides=None, no_replication_role=False):
        """Builds the configuration of the master or the slave."""
        member = self.member(master)
        if not master:
            member.source_port = self.master.port
        return member.options(overrides or {}, no_replication_role)

    def start(self, master, overrides=None, restart=False, no_replication_role=False):
        """Starts the master or the slave and returns a connection to it.

        A restart keeps the member's data directory.
        """
        config = self.options(master, overrides, no_replication_role)
        connection = self.member(master).start(reuse_data=restart, config=config)
        if not restart and self.environment.requires_authentication:
            connection.authenticate()
        if not master:
            connection.set_secondary_ok()
        return connection

    def is_running(self):
        return self.master.is_running() or self.slave.is_running()

    def stop(self, master=None, signal=SIGTERM):
        """Stops the given member, or both members if none is given."""
        if master is None:
            self.stop(True, signal)
            self.stop(False, signal)
            return None

        member = self.member(master)
        if not member.is_running():
            logger.debug("%s is not running", member.name)
            return None
        exit_code = member.stop(signal)
        log.completed(self.name)
        return exit_code
