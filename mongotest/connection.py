from abc import ABCMeta, abstractmethod

from pymongo import MongoClient, ReadPreference
from pymongo.errors import PyMongoError

from mongotest.environment import get_environment
from mongotest.logging import logger


class Connection(metaclass=ABCMeta):
    """Client connection to a running server."""

    @property
    @abstractmethod
    def host(self):
        """Returns the 'host:port' address of the server."""

    @abstractmethod
    def get_db(self, name):
        """Returns the database with the given name."""

    @abstractmethod
    def run_command(self, db, command):
        """Runs a command against the given database and returns the reply."""

    @abstractmethod
    def authenticate(self):
        """Authenticates with the credentials of the test environment."""

    @abstractmethod
    def set_secondary_ok(self):
        """Allows reads that may lag behind the master."""

    @abstractmethod
    def ping(self):
        """Returns whether the server answers."""

    @abstractmethod
    def close(self):
        """Closes the connection."""


class MongoConnection(Connection):
    """Connection backed by pymongo."""
    def __init__(self, host, environment=None, timeout_ms=5000):
        self._host = host
        self.environment = environment or get_environment()
        self.timeout_ms = timeout_ms
        self.secondary_ok = False
        self.authenticated = False
        self.client = self._create_client()

    @property
    def host(self):
        return self._host

    def _client_options(self):
        environment = self.environment
        options = {
            'directConnection': True,
            'serverSelectionTimeoutMS': self.timeout_ms,
            'connectTimeoutMS': self.timeout_ms
        }
        if environment.use_ssl:
            options.update(
                tls=True,
                tlsCertificateKeyFile=environment.client_pem,
                tlsCAFile=environment.ca_pem,
                tlsAllowInvalidHostnames=True
            )
        if self.authenticated:
            if environment.use_x509:
                options['authMechanism'] = 'MONGODB-X509'
            else:
                options.update(
                    username=environment.username,
                    password=environment.password,
                    authSource=environment.auth_database
                )
        return options

    def _create_client(self):
        return MongoClient('mongodb://{}/'.format(self._host), **self._client_options())

    def get_db(self, name):
        if self.secondary_ok:
            return self.client.get_database(name, read_preference=ReadPreference.SECONDARY_PREFERRED)
        return self.client.get_database(name)

    def run_command(self, db, command):
        return self.get_db(db).command(command)

    def authenticate(self):
        logger.debug("Authenticating to %s", self._host)
        self.client.close()
        self.authenticated = True
        self.client = self._create_client()
        self.client.admin.command('ping')

    def set_secondary_ok(self):
        self.secondary_ok = True

    def ping(self):
        try:
            self.client.admin.command('ping')
        except PyMongoError:
            return False
        return True

    def close(self):
        self.client.close()

    def __repr__(self):
        return 'MongoConnection({!r})'.format(self._host)
