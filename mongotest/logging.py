from logging import StreamHandler, DEBUG, getLogger, Formatter
from colorama import Fore, Back, init, Style

init()

class ColourStreamHandler(StreamHandler):

    """ A colorized output StreamHandler """

    colors = {
        'DEBUG': Fore.GREEN,
        'INFO': Fore.WHITE,
        'WARN': Fore.YELLOW,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRIT': Back.RED + Fore.WHITE,
        'CRITICAL': Back.RED + Fore.WHITE
    }

    def format(self, record):
        color = self.colors.get(record.levelname, '')
        return color + super(ColourStreamHandler, self).format(record) + Style.RESET_ALL


def get_logger(name=None, fmt='%(asctime)-15s %(name)s %(message)s'):
    """ Get and initialize a colourised logging instance
    :param name: Name of the logger
    :type name: str
    :param fmt: Message format to use
    :type fmt: str
    :return: Logger instance
    :rtype: Logger
    """
    log = getLogger(name)
    if not any(isinstance(handler, ColourStreamHandler) for handler in log.handlers):
        handler = ColourStreamHandler()
        handler.setLevel(DEBUG)
        handler.setFormatter(Formatter(fmt))
        log.addHandler(handler)
    log.setLevel(DEBUG)
    log.propagate = False  # Don't bubble up to the root logger
    return log


_logger = None


def set_logger(name):
    """Sets the current logger."""
    global _logger
    _logger = get_logger(name)

def reset_logger():
    """Resets the logger to the default."""
    set_logger('mongotest')
reset_logger()

class DynamicLogger(object):
    """Dynamic logger."""
    def __getattr__(self, name):
        return getattr(_logger, name)

logger = DynamicLogger()
