class TestError(Exception):
    """Base class for test errors."""


class FixtureRunningError(TestError):
    """Fixture already running error."""
    def __init__(self, name):
        super(FixtureRunningError, self).__init__("Fixture already running: %s" % (name,))
        self.name = name


class ReservedOptionError(TestError):
    """Reserved option error."""
    def __init__(self, option):
        super(ReservedOptionError, self).__init__("Option is derived and cannot be overridden: %s" % (option,))
        self.option = option


class UnknownMemberError(TestError):
    """Unknown member error."""
    def __init__(self, index):
        super(UnknownMemberError, self).__init__("Unknown member: %s" % (index,))
        self.index = index


class ShellError(TestError):
    """Parallel shell usage error."""


class ProcessStartError(TestError):
    """Process failed to start."""
    def __init__(self, argv, reason):
        super(ProcessStartError, self).__init__("Failed to start %s: %s" % (argv[0], reason))
        self.argv = argv
        self.reason = reason


class ProcessExitError(TestError):
    """Process exited abnormally after being stopped."""
    def __init__(self, name, exit_code):
        super(ProcessExitError, self).__init__("Process %s exited with code %s" % (name, exit_code))
        self.name = name
        self.exit_code = exit_code


class PortExhaustedError(TestError):
    """No ports left to allocate."""


class ConsistencyError(TestError, AssertionError):
    """Cluster members diverged."""
    def __init__(self, message, digests):
        super(ConsistencyError, self).__init__(message)
        self.digests = digests
