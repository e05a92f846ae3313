import importlib
import pkgutil
import sys
import time
import traceback
import uuid
from datetime import datetime
from inspect import isfunction

from colorama import Fore, Style, init

from mongotest.cluster import ClusterFixture
from mongotest.errors import TestError
from mongotest.fixture import forget_fixtures, get_fixtures, set_process_id
from mongotest.logging import logger, reset_logger, set_logger

init()

_test_runner = None


def _set_test_runner(runner):
    """Sets the current test runner."""
    global _test_runner
    _test_runner = runner


def _get_test_runner():
    return _test_runner


def create_cluster(nodes=3, **kwargs):
    """Creates a cluster within the context of the currently running test."""
    runner = _get_test_runner()
    if runner is None or not runner.is_running():
        raise TestError("No test is currently in progress")
    name = '{}-{}'.format(runner.current_test, datetime.now().strftime('%Y%m%d%H%M%S'))
    return ClusterFixture(name, nodes, process_id=runner.test_id, **kwargs)


class TestRunner(object):
    """Test runner."""
    def __init__(self):
        self.test_id = str(uuid.uuid4())
        self.current_test = None

    def is_running(self):
        """Returns a boolean indicating whether the test runner is currently running."""
        return self.current_test is not None

    def run(self, paths, fail_fast=False):
        """Runs the tests at the given paths."""
        _set_test_runner(self)
        set_process_id(self.test_id)
        try:
            return self._run_paths(paths, fail_fast)
        finally:
            set_process_id(None)
            _set_test_runner(None)

    def _run_paths(self, paths, fail_fast=False):
        return_code = 0
        for path in paths:
            path_code = self._run_path(path, fail_fast)
            if path_code != 0:
                if return_code == 0:
                    return_code = path_code
                if fail_fast:
                    return return_code
        return return_code

    def _run_path(self, path, fail_fast=False):
        return_code = 0
        for test in self._find_tests(path):
            start = time.time()
            self.current_test = test.__name__
            self._print_test(self.current_test)
            try:
                set_logger(self.current_test)
                test()
            except KeyboardInterrupt:
                self._print_failure("{} cancelled".format(self.current_test))
                raise
            except Exception:
                end = time.time()
                self._print_failure("{} failed in {} seconds".format(self.current_test, round(end - start, 4)))
                traceback.print_exc(file=sys.stdout)
                if fail_fast:
                    return 1
                else:
                    return_code = 1
            else:
                end = time.time()
                self._print_success("{} passed in {} seconds".format(self.current_test, round(end - start, 4)))
            finally:
                reset_logger()
                self.current_test = None
        return return_code

    def _print_test(self, name):
        text = "Running {}".format(name)
        print('-' * len(text))
        print(text)
        print('-' * len(text))

    def _print_success(self, message):
        print(Fore.GREEN + message + Style.RESET_ALL)

    def _print_failure(self, message):
        print(Fore.RED + message + Style.RESET_ALL)

    def cleanup(self):
        """Stops the fixtures this run left running."""
        for fixture in get_fixtures(self.test_id):
            if fixture.is_running():
                logger.warning("Stopping leaked fixture %s", fixture.name)
                try:
                    fixture.stop()
                except TestError as e:
                    logger.error(str(e))
        forget_fixtures(self.test_id)

    def _find_tests(self, path):
        """Finds the test functions in a module, a package or a module.function path."""
        try:
            module = importlib.import_module(path)
        except ImportError:
            module_name, _, function_name = path.rpartition('.')
            if not module_name:
                raise
            module = importlib.import_module(module_name)
            return self._find_functions(module, function_name)
        return self._scan_functions(module)

    def _find_functions(self, module, name=None):
        funcs = []
        if name is not None:
            funcs.append(getattr(module, name))
        else:
            for func in module.__dict__.values():
                if isfunction(func) and func.__name__.startswith('test_') and func.__module__ == module.__name__:
                    funcs.append(func)
        return funcs

    def _scan_functions(self, module):
        funcs = []
        if hasattr(module, '__path__'):
            for info in pkgutil.iter_modules(module.__path__):
                if not info.name.startswith('__'):
                    submodule = importlib.import_module('{}.{}'.format(module.__name__, info.name))
                    funcs += self._scan_functions(submodule)
        funcs += self._find_functions(module)
        return funcs

def run(paths, fail_fast=False):
    """Runs tests."""
    runner = TestRunner()
    try:
        return runner.run(paths, fail_fast)
    finally:
        runner.cleanup()
