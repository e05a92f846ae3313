import errno
import os
import shutil

from terminaltables import AsciiTable


def remove_file(path):
    """Removes a file, ignoring it if it does not exist."""
    try:
        os.remove(path)
    except OSError as e:
        if e.errno != errno.ENOENT:
            raise


def reset_dbpath(path):
    """Wipes and recreates a directory."""
    if os.path.exists(path):
        shutil.rmtree(path)
    os.makedirs(path)


def make_dirs(path):
    if not os.path.exists(path):
        os.makedirs(path)


def _create_table(data):
    """Creates a table from the given data."""
    table = AsciiTable(data)
    table.inner_column_border = False
    table.inner_row_border = False
    table.outer_border = False
    table.inner_heading_row_border = False
    table.padding_right = 4
    return str(table.table)

def servers_to_str(servers):
    """Returns a string table for the given server fixtures."""
    data = [['INDEX', 'NAME', 'STATUS', 'PORT', 'PATH'],]
    for i, server in enumerate(servers):
        data.append([i, server.name, server.state, server.port, server.dbpath])
    return _create_table(data)

def digests_to_str(servers, digests):
    """Returns a string table of the digest reported by each server."""
    data = [['INDEX', 'HOST', 'DIGEST'],]
    for i, (server, digest) in enumerate(zip(servers, digests)):
        data.append([i, server.host, digest])
    return _create_table(data)

class Context(object):
    def __init__(self, *contexts):
        self._contexts = contexts

    def __enter__(self):
        pass

    def __exit__(self, exc_type, exc_val, exc_tb):
        self()

    def __call__(self):
        for context in self._contexts:
            context()

def with_context(*contexts):
    return Context(*contexts)
