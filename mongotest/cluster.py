from mongotest.errors import ConsistencyError, TestError, UnknownMemberError
from mongotest.fixture import Fixture
from mongotest.logger import log
from mongotest.logging import logger
from mongotest.ports import allocate_ports
from mongotest.process import SIGTERM
from mongotest.server import ServerFixture
from mongotest.utils import digests_to_str, servers_to_str, with_context


class ClusterFixture(Fixture):
    """A fixed set of peer servers expected to hold identical data."""
    def __init__(self, name, nodes=3, overrides=None, ports=None, **kwargs):
        super(ClusterFixture, self).__init__(name, **kwargs)
        self.ports = list(ports) if ports is not None else allocate_ports(nodes)
        self._members = [
            ServerFixture(
                self._member_name(i),
                port=port,
                overrides=overrides,
                environment=self.environment,
                launcher=self.launcher,
                process_id=self.process_id
            )
            for i, port in enumerate(self.ports)
        ]
        self.url = ','.join(member.host for member in self._members)
        self.setup()

    def _member_name(self, index):
        return '{}{}'.format(self.name, index)

    @property
    def members(self):
        return list(self._members)

    def member(self, index):
        """Returns the member at the given index."""
        if not isinstance(index, int) or not 0 <= index < len(self._members):
            raise UnknownMemberError(index)
        return self._members[index]

    def setup(self):
        """Starts every member."""
        logger.info("Setting up cluster %s", self.name)
        try:
            for member in self._members:
                member.start()
        except Exception:
            logger.error("Failed to set up cluster %s", self.name)
            self.stop()
            raise
        return self

    def is_running(self):
        return any(member.is_running() for member in self._members)

    def stop(self, signal=SIGTERM):
        """Stops every member."""
        logger.info("Tearing down cluster %s", self.name)
        for member in self._members:
            member.stop(signal)
        log.completed(self.name)

    def _digest(self, member, namespace):
        connection = member.connection
        if connection is None:
            raise TestError("Cannot hash {} on {}: member is not running".format(namespace, member.name))
        db, _, collection = namespace.partition('.')
        if collection:
            reply = connection.run_command(db, {'dbhash': 1, 'collections': [collection]})
            return reply.get('collections', {}).get(collection)
        return connection.run_command(db, 'dbhash').get('md5')

    def digests(self, namespace):
        """Returns the digest of a namespace on every member."""
        return [self._digest(member, namespace) for member in self._members]

    def check_consistency(self, namespace, message=''):
        """Asserts every member holds the same data for a namespace as member 0."""
        digests = self.digests(namespace)
        for i in range(1, len(digests)):
            if digests[i] != digests[0]:
                error = "check_consistency on {} {}: member {} has digest {} but member 0 has digest {}\n{}".format(
                    namespace, message, i, digests[i], digests[0], digests_to_str(self._members, digests))
                logger.error(error)
                raise ConsistencyError(error, digests)
        logger.debug("%s is consistent across %d members", namespace, len(digests))

    def kill_member(self, index=0, signal=SIGTERM):
        """Stops a single member.

        The returned context restarts the member when exited.
        """
        member = self.member(index)
        logger.info("Killing member %d of cluster %s", index, self.name)
        member.stop(signal)
        return with_context(lambda: self.restart_member(index))

    def restart_member(self, index=0):
        """Starts a member again on its port with a fresh data directory."""
        member = self.member(index)
        logger.info("Restarting member %d of cluster %s", index, self.name)
        return member.start()

    def __str__(self):
        lines = []
        lines.append('cluster: {}'.format(self.name))
        lines.append('url: {}'.format(self.url))
        lines.append(servers_to_str(self._members))
        return '\n'.join(lines)
