import os
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class TestEnvironment(BaseSettings):
    """Test options shared by every fixture created in a run."""

    model_config = SettingsConfigDict(
        env_prefix='MONGOTEST_',
        env_file='.env',
        extra='ignore',
        frozen=True
    )

    # Layout
    data_path: str = os.path.join(os.getcwd(), '.data')
    bin_path: str = ''
    mongod_binary: str = 'mongod'

    # Ports
    base_port: int = 31000
    port_registry: Optional[str] = None

    # Server options
    no_journal: bool = False
    key_file: Optional[str] = None
    auth: bool = False
    use_ssl: bool = False
    use_x509: bool = False
    server_pem: str = 'jstests/libs/server.pem'
    ca_pem: str = 'jstests/libs/ca.pem'
    client_pem: str = 'jstests/libs/client.pem'

    # Credentials used to authenticate fresh connections
    username: Optional[str] = None
    password: Optional[str] = None
    auth_database: str = 'admin'

    # Process launching
    launcher: Literal['subprocess', 'docker'] = 'subprocess'
    docker_image: str = 'mongo:3.6'
    startup_timeout: int = 60
    strict_exit: bool = False

    @property
    def requires_authentication(self):
        """Returns whether fresh connections must authenticate."""
        return bool(self.key_file or self.auth or self.use_x509)

    def binary(self, name):
        """Returns the path of the given program."""
        return os.path.join(self.bin_path, name) if self.bin_path else name


_environment = None


def get_environment():
    """Returns the environment for this run, reading it on first use."""
    global _environment
    if _environment is None:
        _environment = TestEnvironment()
    return _environment


def set_environment(environment):
    """Replaces the environment for this run."""
    global _environment
    _environment = environment
