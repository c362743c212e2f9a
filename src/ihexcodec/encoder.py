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

r"""Intel HEX record encoder.

Serializes logical :class:`~.records.Record` objects into text lines,
splitting data records into chunks of a maximum byte width.
"""

import logging
from typing import Iterable
from typing import Iterator

from .base import ADDRESS_MAX
from .records import Record
from .records import RecordKind
from .records import checksum
from .utils import chop

logger = logging.getLogger(__name__)

DEFAULT_WIDTH: int = 16
r"""Default maximum number of data bytes per line."""

MAX_WIDTH: int = 0xFF
r"""Highest maximum number of data bytes per line."""

END_OF_FILE_LINE: str = ':00000001FF'
r"""The one and only serialized *End Of File* record."""


def _check_width(width: int) -> int:

    width = width.__index__()
    if not 1 <= width <= MAX_WIDTH:
        raise ValueError('invalid width')
    return width


def _iter_data_lines(record: Record, width: int, end: str) -> Iterator[str]:

    code = int(RecordKind.DATA)
    offset = record.address

    for chunk in chop(record.data, width * 2):
        count = len(chunk) // 2
        value = checksum(count, offset, code, chunk)
        yield f':{count:02X}{offset:04X}{code:02X}{chunk}{value:02X}{end}'
        offset += count


def encode_lines(
    record: Record,
    width: int = DEFAULT_WIDTH,
    end: str = '\n',
    check_overflow: bool = False,
) -> Iterator[str]:
    r"""Serializes a record into lines.

    Args:
        record (:class:`Record`):
            Logical record to serialize.

        width (int):
            Maximum number of data bytes per line, between 1 and
            :data:`MAX_WIDTH`.

        end (str):
            Line terminator.

        check_overflow (bool):
            If true, data running past address ``0xFFFF`` raises an error.
            Unchecked by default.

    Returns:
        iterator: Serialized lines, each terminated by `end`.
        Records other than data or *End Of File* have no serialized form,
        thus produce no lines.

    Raises:
        ValueError: Invalid width, or address overflow.

    Examples:
        >>> from ihexcodec.encoder import encode_lines
        >>> from ihexcodec.records import Record
        >>> list(encode_lines(Record.create_data(0x100, b'abcde'), width=2))
        [':0201000061623A\n', ':02010200636434\n', ':010104006595\n']
    """

    width = _check_width(width)
    kind = record.kind

    if kind.is_eof():
        return iter([END_OF_FILE_LINE + end])

    if not kind.is_data():
        logger.debug('no serialized form for %s record', kind.name)
        return iter([])

    if check_overflow and record.endex > ADDRESS_MAX + 1:
        raise ValueError('address overflow')

    return _iter_data_lines(record, width, end)


def encode(
    record: Record,
    width: int = DEFAULT_WIDTH,
    end: str = '\n',
    check_overflow: bool = False,
) -> str:
    r"""Serializes a record into text.

    Args:
        record (:class:`Record`):
            Logical record to serialize.

        width (int):
            See :func:`encode_lines`.

        end (str):
            See :func:`encode_lines`.

        check_overflow (bool):
            See :func:`encode_lines`.

    Returns:
        str: Concatenated lines; empty if nothing to serialize.

    Examples:
        >>> from ihexcodec.encoder import encode
        >>> from ihexcodec.records import Record
        >>> encode(Record.create_data(0, b'\xCB'), width=32)
        ':01000000CB34\n'
        >>> encode(Record.create_end_of_file())
        ':00000001FF\n'
        >>> encode(Record.create_data(0, b''))
        ''
    """

    return ''.join(encode_lines(record, width=width, end=end,
                                check_overflow=check_overflow))


def encode_records(
    records: Iterable[Record],
    width: int = DEFAULT_WIDTH,
    end: str = '\n',
    check_overflow: bool = False,
) -> str:
    r"""Serializes a sequence of records into text.

    Args:
        records (iterable):
            Logical records to serialize, in order.

        width (int):
            See :func:`encode_lines`.

        end (str):
            See :func:`encode_lines`.

        check_overflow (bool):
            See :func:`encode_lines`.

    Returns:
        str: Concatenated lines of all the records.

    Examples:
        >>> from ihexcodec.encoder import encode_records
        >>> from ihexcodec.parser import parse_string
        >>> text = ':0100000041BE\n:0100010042BC\n:00000001FF\n'
        >>> encode_records(parse_string(text), width=2)
        ':0200000041427B\n:00000001FF\n'
    """

    width = _check_width(width)
    return ''.join(encode(record, width=width, end=end,
                          check_overflow=check_overflow)
                   for record in records)
