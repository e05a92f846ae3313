"""Parallel shells: client scripts running in their own process.

A script is run by ``python -m mongotest.shell``, which connects to the target
server, exposes it as ``db`` and executes the script as its whole program.
"""
import inspect
import json
import random
import sys
import textwrap
from argparse import ArgumentParser
from collections import OrderedDict

from mongotest.connection import MongoConnection
from mongotest.environment import get_environment
from mongotest.errors import ShellError
from mongotest.logging import logger
from mongotest.options import LOOPBACK
from mongotest.process import SubprocessLauncher

DEFAULT_PORT = 27017


class ScriptTemplate(object):
    """Script body plus the named values bound before it runs."""
    def __init__(self, body, bindings=None):
        self.body = body
        self.bindings = OrderedDict(bindings or ())

    def bind(self, name, value):
        self.bindings[name] = value
        return self

    def render(self):
        """Returns the script source with its bindings assigned at the top."""
        lines = []
        if self.bindings:
            lines.append('import json')
        for name, value in self.bindings.items():
            lines.append('{} = json.loads({!r})'.format(name, json.dumps(value)))
        lines.append(self.body)
        return '\n'.join(lines)


def wrap_function(func):
    """Turns a function into a script calling it."""
    name = getattr(func, '__name__', None)
    if name is None or name == '<lambda>':
        raise ShellError("Cannot run {!r} in a parallel shell: only named functions are supported".format(func))
    try:
        source = textwrap.dedent(inspect.getsource(func))
    except (OSError, TypeError) as e:
        raise ShellError("Cannot read the source of {!r}: {}".format(func, e))

    wrapper = '_f{}'.format(random.randint(0, 99999))
    lines = ['def {}():'.format(wrapper)]
    lines.append(textwrap.indent(source.rstrip('\n'), '    '))
    lines.append('    return {}()'.format(name))
    lines.append('{}()'.format(wrapper))
    return '\n'.join(lines)


class ParallelShell(object):
    """Handle to a running parallel shell."""
    def __init__(self, launcher, handle):
        self._launcher = launcher
        self._handle = handle

    def wait(self):
        """Blocks until the shell exits and returns its exit code."""
        if self._handle is None:
            raise ShellError("Parallel shell has already been waited on")
        handle, self._handle = self._handle, None
        exit_code = self._launcher.wait(handle)
        logger.debug("Parallel shell exited with code %s", exit_code)
        return exit_code


class ParallelShellLauncher(object):
    """Launches client scripts against a server in separate processes.

    connection and db_name describe the database the caller works with: a
    shell started without no_connect reopens the same database, and targets
    the connection's host when no port is given. test_data is passed to every
    shell as TestData.
    """
    def __init__(self, connection=None, db_name='test', test_data=None, environment=None, launcher=None):
        self.connection = connection
        self.db_name = db_name
        self.test_data = test_data
        self.environment = environment or get_environment()
        self.launcher = launcher or SubprocessLauncher(self.environment)

    def _template(self, script):
        if isinstance(script, ScriptTemplate):
            return ScriptTemplate(script.body, script.bindings)
        if isinstance(script, str):
            return ScriptTemplate(script)
        if callable(script):
            return ScriptTemplate(wrap_function(script))
        raise ShellError("Bad script for parallel shell: {!r}".format(script))

    def render(self, script, no_connect=False):
        """Returns the source a shell runs for the given script."""
        template = self._template(script)
        if not no_connect and self.connection is not None:
            template.body = 'db = db.client.get_database({!r})\n'.format(self.db_name) + template.body
        if self.test_data is not None:
            bindings = OrderedDict([('TestData', self.test_data)])
            bindings.update((k, v) for k, v in template.bindings.items() if k != 'TestData')
            template.bindings = bindings
        return template.render()

    def target(self, port=None):
        """Returns the host and port a shell connects to."""
        host = None
        if self.connection is not None:
            address = self.connection.host.split(':')
            host = address[0]
            if not port and len(address) >= 2:
                port = address[1]
        return host, port

    def arguments(self, script, port=None, no_connect=False):
        code = self.render(script, no_connect)
        argv = [sys.executable, '-m', 'mongotest.shell']
        if no_connect:
            argv.append('--nodb')
        argv.extend(['--eval', code])
        host, port = self.target(port)
        if host:
            argv.extend(['--host', host])
        if port:
            argv.extend(['--port', str(port)])
        return argv

    def launch(self, script, port=None, no_connect=False):
        """Starts a shell running the script and returns its handle."""
        argv = self.arguments(script, port, no_connect)
        handle = self.launcher.start_process(argv, no_connect=True)
        return ParallelShell(self.launcher, handle)


def main(argv=None):
    parser = ArgumentParser(prog='mongotest.shell', description='Runs a script against a server')
    parser.add_argument('--eval', dest='code', required=True, help='Script to run')
    parser.add_argument('--nodb', action='store_true', help='Do not connect to a server')
    parser.add_argument('--host', default=LOOPBACK, help='Server host')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT, help='Server port')
    args = parser.parse_args(argv)

    scope = {'__name__': '__shell__', 'TestData': None}
    connection = None
    if not args.nodb:
        connection = MongoConnection('{}:{}'.format(args.host, args.port))
        scope['db'] = connection.get_db('test')
    try:
        exec(compile(args.code, '<shell>', 'exec'), scope)
    except Exception:
        logger.exception("Parallel shell script failed")
        return 1
    finally:
        if connection is not None:
            connection.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
