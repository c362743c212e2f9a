# Copyright (c) 2013-2025, Andrea Zoppi
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

"""
Module that contains the command line app.

Why does this file exist, and why not put this in __main__?

  You might be tempted to import things from __main__ later, but that will cause
  problems: the code will get executed twice:

  - When you run `python -m ihexcodec` python will execute
    ``__main__.py`` as a script. That means there won't be any
    ``ihexcodec.__main__`` in ``sys.modules``.
  - When you import __main__ it will get executed again (as a module) because
    there's no ``ihexcodec.__main__`` in ``sys.modules``.

  Also see (1) from https://click.palletsprojects.com/en/stable/setuptools/#setuptools-integration
"""

import logging
from typing import Iterable
from typing import Iterator

import click

from .__init__ import __version__
from .base import ADDRESS_MAX
from .base import colorize_tokens
from .encoder import DEFAULT_WIDTH
from .encoder import MAX_WIDTH
from .encoder import encode_records
from .fields import FIELD_LABELS
from .fields import TOKEN_KEYS
from .fields import FieldKind
from .fields import tokenize
from .parser import parse_string
from .records import Record
from .utils import parse_int

logger = logging.getLogger(__name__)

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


class BasedIntParamType(click.ParamType):

    def __init__(self, name: str, minimum: int, maximum: int):

        self.name = name
        self.minimum = minimum
        self.maximum = maximum

    def convert(self, value, param, ctx):
        try:
            i = parse_int(value)
            if not self.minimum <= i <= self.maximum:
                raise ValueError()
            return i
        except ValueError:
            self.fail(f'invalid {self.name}: {value!r}', param, ctx)


ADDRESS_INT = BasedIntParamType('address', 0, ADDRESS_MAX)
WIDTH_INT = BasedIntParamType('width', 1, MAX_WIDTH)

FILE_PATH_IN = click.Path(dir_okay=False, allow_dash=True, readable=True, exists=True)
FILE_PATH_OUT = click.Path(dir_okay=False, allow_dash=True, writable=True)


# ----------------------------------------------------------------------------

def check_records(records: Iterable[Record]) -> Iterator[Record]:
    r"""Aborts the command on the first parse error record."""

    for record in records:
        if record.kind.is_error():
            raise click.ClickException(record.data)
        yield record


def configure_logging(verbose: int) -> None:

    level = LOG_LEVELS[min(verbose, len(LOG_LEVELS) - 1)]
    logging.basicConfig(level=level, format='%(levelname)s:%(name)s: %(message)s')
    logging.getLogger().setLevel(level)


def print_version(ctx, _, value):

    if not value or ctx.resilient_parsing:
        return

    click.echo(str(__version__))
    ctx.exit()


def read_bytes(path: str) -> bytes:

    try:
        with click.open_file(path, 'rb') as stream:
            return stream.read()
    except OSError as exc:
        raise click.FileError(path, hint=str(exc))


def read_text(path: str) -> str:

    return read_bytes(path).decode('latin-1')


def write_text(path: str, text: str) -> None:

    with click.open_file(path, 'wb') as stream:
        stream.write(text.encode('ascii'))


# ============================================================================

@click.group(context_settings=dict(auto_envvar_prefix='IHEXCODEC'))
@click.option('--version', is_flag=True, callback=print_version,
              expose_value=False, is_eager=True, help="""
    Prints the package version and exits.
""")
@click.option('-v', '--verbose', count=True, help="""
    Increases the logging verbosity; repeat for debug messages.
""")
def main(verbose: int) -> None:
    """
    Intel HEX parser and encoder.

    Being built with `Click <https://click.palletsprojects.com/en/stable/>`_, all the
    commands follow POSIX-like syntax rules, as well as reserving the virtual
    file path ``-`` for command chaining via standard output/input buffering.

    Every option can also be set via an environment variable named after the
    command and option, e.g. ``IHEXCODEC_WRITE_WIDTH=32``.
    """

    if verbose:
        configure_logging(verbose)


# ----------------------------------------------------------------------------

@main.command()
@click.option('-w', '--width', type=WIDTH_INT, default=DEFAULT_WIDTH, show_default=True, help="""
    Maximum number of data bytes per output line.
""")
@click.option('--check-overflow', is_flag=True, help="""
    Rejects data running past address 0xFFFF.
""")
@click.argument('infile', type=FILE_PATH_IN)
@click.argument('outfile', type=FILE_PATH_OUT, default='-')
def convert(
    width: int,
    check_overflow: bool,
    infile: str,
    outfile: str,
) -> None:
    r"""Re-encodes a HEX file with another line width.

    ``INFILE`` is the path of the input file.
    Set to ``-`` to read from standard input.

    ``OUTFILE`` is the path of the output file.
    Set to ``-`` (default) to write to standard output.

    Contiguous data lines are merged before being split again, so the output
    only depends on the data and on ``--width``.
    """

    records = check_records(parse_string(read_text(infile), check_overflow=check_overflow))
    text = encode_records(records, width=width, check_overflow=check_overflow)
    write_text(outfile, text)


# ----------------------------------------------------------------------------

@main.command()
@click.option('--color/--no-color', default=False, show_default=True, help="""
    Colorizes the field text with ANSI codes.
""")
@click.argument('infile', type=FILE_PATH_IN)
def fields(
    color: bool,
    infile: str,
) -> None:
    r"""Dumps the fields scanned from a HEX file.

    ``INFILE`` is the path of the input file.
    Set to ``-`` to read from standard input.

    Each field is printed on its own line, preceded by its kind.
    Scanning stops at the first malformed field.
    """

    for field in tokenize(read_text(infile)):
        if field.kind == FieldKind.ERROR:
            raise click.ClickException(field.text)

        tokens = {TOKEN_KEYS[field.kind]: field.text.encode()}
        if color:
            tokens = colorize_tokens(tokens)
        text = b''.join(tokens.values()).decode()
        click.echo(f'{FIELD_LABELS[field.kind]:<13} {text}'.rstrip())


# ----------------------------------------------------------------------------

@main.command()
@click.option('-b', '--binary', is_flag=True, help="""
    Writes the raw binary data instead of hexadecimal text.
""")
@click.option('--check-overflow', is_flag=True, help="""
    Rejects data running past address 0xFFFF.
""")
@click.argument('infile', type=FILE_PATH_IN)
def read(
    binary: bool,
    check_overflow: bool,
    infile: str,
) -> None:
    r"""Reads data from a HEX file.

    ``INFILE`` is the path of the input file.
    Set to ``-`` to read from standard input.

    Each contiguous data block is printed as hexadecimal text on its own
    line, or written as raw bytes to the standard output with ``--binary``.
    """

    records = check_records(parse_string(read_text(infile), check_overflow=check_overflow))
    stdout = click.get_binary_stream('stdout') if binary else None

    for record in records:
        if not record.kind.is_data():
            continue

        if stdout is not None:
            stdout.write(record.to_bytes())
        else:
            click.echo(record.data)

    if stdout is not None:
        stdout.flush()


# ----------------------------------------------------------------------------

@main.command()
@click.argument('infile', type=FILE_PATH_IN)
def validate(
    infile: str,
) -> None:
    r"""Validates a HEX file.

    ``INFILE`` is the path of the input file.
    Set to ``-`` to read from standard input.

    It fails on the first malformed line or wrong checksum.
    """

    count = 0
    for _ in check_records(parse_string(read_text(infile))):
        count += 1
    logger.info('%s: %d valid records', infile, count)


# ----------------------------------------------------------------------------

@main.command()
@click.option('--immediate', is_flag=True, help="""
    Encodes the text of ``SOURCE`` itself, instead of the file it names.
""")
@click.option('-a', '--address', type=ADDRESS_INT, default=0, show_default=True, help="""
    Address of the first data byte.
""")
@click.option('-w', '--width', type=WIDTH_INT, default=DEFAULT_WIDTH, show_default=True, help="""
    Maximum number of data bytes per output line.
""")
@click.option('--check-overflow', is_flag=True, help="""
    Rejects data running past address 0xFFFF.
""")
@click.argument('source')
@click.argument('outfile', type=FILE_PATH_OUT, default='-')
def write(
    immediate: bool,
    address: int,
    width: int,
    check_overflow: bool,
    source: str,
    outfile: str,
) -> None:
    r"""Writes binary data as a HEX file.

    ``SOURCE`` is the path of the binary input file.
    Set to ``-`` to read from standard input.
    With ``--immediate``, it is the very text to encode.

    ``OUTFILE`` is the path of the output file.
    Set to ``-`` (default) to write to standard output.

    The data lines are followed by the *End Of File* line.

    Data running past address 0xFFFF is written as is, with line addresses
    wider than four digits, unless ``--check-overflow`` is given.
    """

    if immediate:
        data = source.encode()
    else:
        data = read_bytes(source)

    records = [
        Record.create_data(address, data),
        Record.create_end_of_file(),
    ]
    try:
        text = encode_records(records, width=width, check_overflow=check_overflow)
    except ValueError as exc:
        raise click.ClickException(str(exc))
    write_text(outfile, text)
