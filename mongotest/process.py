import os
import signal
import subprocess
import time
from abc import ABCMeta, abstractmethod
from threading import Thread

import docker
from docker.errors import DockerException, NotFound

from mongotest.connection import MongoConnection
from mongotest.environment import get_environment
from mongotest.errors import ProcessStartError
from mongotest.logging import logger
from mongotest.options import LOOPBACK

SIGTERM = signal.SIGTERM
SIGKILL = signal.SIGKILL


def find_port(argv):
    """Returns the value of --port in the given arguments."""
    for i, arg in enumerate(argv[:-1]):
        if arg == '--port':
            return int(argv[i + 1])
    return None


def find_path(argv):
    """Returns the value of --dbpath in the given arguments."""
    for i, arg in enumerate(argv[:-1]):
        if arg == '--dbpath':
            return argv[i + 1]
    return None


class ProcessHandle(object):
    """Handle to a launched program."""
    def __init__(self, argv):
        self.argv = list(argv)
        self.connection = None

    @property
    def name(self):
        return os.path.basename(self.argv[0])

    def poll(self):
        """Returns the exit code if the program exited, otherwise None."""
        raise NotImplementedError()

    def __repr__(self):
        return '{}({!r})'.format(type(self).__name__, self.name)


class ProcessLauncher(metaclass=ABCMeta):
    """Starts, signals and waits on programs."""
    def __init__(self, environment=None):
        self.environment = environment or get_environment()

    def start_process(self, argv, no_connect=False):
        """Starts a program.

        Unless no_connect is set, blocks until the server listening on the
        program's --port answers and attaches a connection to the handle.
        """
        argv = [str(arg) for arg in argv]
        logger.info("Starting %s", ' '.join(argv))
        handle = self._spawn(argv)
        port = find_port(argv)
        if not no_connect and port is not None:
            handle.connection = self.wait_for_start(handle, port)
        return handle

    def wait_for_start(self, handle, port):
        """Waits for the program to accept connections."""
        connection = self.connect(port)
        for _ in range(self.environment.startup_timeout):
            exit_code = handle.poll()
            if exit_code is not None:
                connection.close()
                raise ProcessStartError(handle.argv, "exited with code {}".format(exit_code))
            if connection.ping():
                return connection
            time.sleep(1)
        connection.close()
        self.send_signal(handle, SIGKILL)
        self.wait(handle)
        raise ProcessStartError(handle.argv, "no answer on port {} after {} seconds".format(
            port, self.environment.startup_timeout))

    def connect(self, port):
        """Returns a connection to the server on the given port."""
        return MongoConnection('{}:{}'.format(LOOPBACK, port), self.environment, timeout_ms=1000)

    @abstractmethod
    def _spawn(self, argv):
        """Launches the program and returns its handle."""

    @abstractmethod
    def send_signal(self, handle, sig):
        """Sends a signal to the program."""

    @abstractmethod
    def wait(self, handle):
        """Blocks until the program exits and returns its exit code."""


class SubprocessHandle(ProcessHandle):
    def __init__(self, argv, process):
        super(SubprocessHandle, self).__init__(argv)
        self.process = process
        self.log_forwarding_thread = None

    @property
    def pid(self):
        return self.process.pid

    def poll(self):
        return self.process.poll()


class SubprocessLauncher(ProcessLauncher):
    """Runs programs as local child processes."""

    def _forward_logs(self, handle):
        """Forwards the program's output to the framework logger."""
        for line in iter(handle.process.stdout.readline, ''):
            line = line.rstrip()
            if line:
                logger.debug("[%s %s] %s", handle.name, handle.pid, line)
        handle.process.stdout.close()

    def _spawn(self, argv):
        try:
            process = subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                universal_newlines=True,
                bufsize=1,
                start_new_session=True
            )
        except OSError as e:
            raise ProcessStartError(argv, e)
        handle = SubprocessHandle(argv, process)
        handle.log_forwarding_thread = Thread(
            target=self._forward_logs,
            args=(handle,),
            daemon=True,
            name='LogForwarder-{}'.format(process.pid)
        )
        handle.log_forwarding_thread.start()
        return handle

    def send_signal(self, handle, sig):
        if handle.poll() is None:
            logger.debug("Sending signal %s to %s", sig, handle)
            handle.process.send_signal(sig)

    def wait(self, handle):
        exit_code = handle.process.wait()
        if handle.log_forwarding_thread is not None:
            handle.log_forwarding_thread.join()
        return exit_code


class ContainerHandle(ProcessHandle):
    def __init__(self, argv, container):
        super(ContainerHandle, self).__init__(argv)
        self.container = container

    def poll(self):
        try:
            self.container.reload()
        except NotFound:
            return None
        if self.container.status in ('exited', 'dead'):
            return self.container.attrs['State']['ExitCode']
        return None


class DockerLauncher(ProcessLauncher):
    """Runs programs inside containers sharing the host network."""
    def __init__(self, environment=None, docker_client=None):
        super(DockerLauncher, self).__init__(environment)
        self._docker_client = docker_client or docker.from_env()

    def _volumes(self, argv):
        paths = [os.getcwd()]
        dbpath = find_path(argv)
        if dbpath is not None:
            paths.append(os.path.abspath(dbpath))
        return {path: {'bind': path, 'mode': 'rw'} for path in paths}

    def _spawn(self, argv):
        try:
            container = self._docker_client.containers.run(
                self.environment.docker_image,
                argv,
                labels={
                    'mongotest': 'true',
                    'mongotest-program': os.path.basename(argv[0]),
                    'mongotest-port': str(find_port(argv) or '')
                },
                network_mode='host',
                volumes=self._volumes(argv),
                working_dir=os.getcwd(),
                user='{}:{}'.format(os.getuid(), os.getgid()),
                detach=True
            )
        except DockerException as e:
            raise ProcessStartError(argv, e)
        logger.debug("Running container %s", container.name)
        return ContainerHandle(argv, container)

    def send_signal(self, handle, sig):
        if handle.poll() is None:
            logger.debug("Sending signal %s to container %s", sig, handle.container.name)
            handle.container.kill(signal=int(sig))

    def wait(self, handle):
        result = handle.container.wait()
        for line in handle.container.logs().decode('utf-8', 'replace').splitlines():
            logger.debug("[%s %s] %s", handle.name, handle.container.name, line)
        handle.container.remove()
        return result['StatusCode']


def create_launcher(environment=None):
    """Returns the launcher configured by the test environment."""
    environment = environment or get_environment()
    if environment.launcher == 'docker':
        return DockerLauncher(environment)
    return SubprocessLauncher(environment)
