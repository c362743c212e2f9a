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

r"""Intel HEX record assembler.

The parser pulls :class:`~.fields.Field` tokens and assembles them into
validated logical :class:`~.records.Record` objects.

Contiguous data lines are merged into a single logical record, so that the
chunking width of the source text does not leak into the records handed to
the caller.
Any error (malformed field, unexpected field, wrong checksum) becomes a
single :attr:`~.records.RecordKind.PARSE_ERROR` record, which is always the
last record of the sequence.
"""

import abc
import collections
import logging
from typing import Deque
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

from .base import ADDRESS_MAX
from .base import HEX_DIGITS
from .base import AnyBytes
from .fields import FIELD_LABELS
from .fields import Field
from .fields import FieldKind
from .fields import tokenize
from .records import LINE_KINDS
from .records import Record
from .records import RecordKind
from .records import format_checksum

logger = logging.getLogger(__name__)


def _hex_value(text: str, digits: int) -> int:

    if len(text) != digits or any(c not in HEX_DIGITS for c in text):
        raise ValueError(f'invalid hex digits: {text!r}')
    return int(text, 16)


def _line_kind(text: str) -> RecordKind:

    code = _hex_value(text, 2)
    if code not in LINE_KINDS:
        raise ValueError(f'invalid record kind: {text!r}')
    return RecordKind(code)


class MergeState(abc.ABC):
    r"""State of the data record merger.

    Each incoming record drives a transition via :meth:`feed`, which returns
    the next state along with the records to emit right away.
    """

    @abc.abstractmethod
    def feed(self, record: Record) -> Tuple['MergeState', List[Record]]:
        r"""Processes an incoming record.

        Args:
            record (:class:`Record`):
                Record just parsed.

        Returns:
            (state, records): Next state, records to emit in order.
        """
        ...

    @abc.abstractmethod
    def flush(self) -> List[Record]:
        r"""Records to emit when the stream ends, in order."""
        ...


class NoPending(MergeState):
    r"""No data run is pending.

    Examples:
        >>> from ihexcodec.parser import NoPending
        >>> from ihexcodec.records import Record
        >>> state, emitted = NoPending().feed(Record.create_data(0, b'a'))
        >>> type(state).__name__, emitted
        ('PendingRun', [])
    """

    def feed(self, record: Record) -> Tuple[MergeState, List[Record]]:

        if record.kind.is_data():
            return PendingRun(record), []
        return self, [record]

    def flush(self) -> List[Record]:

        return []


class PendingRun(MergeState):
    r"""A run of contiguous data records is pending.

    This is the mutable accumulator of the data bytes seen so far; the
    emitted :class:`Record` is built only when the run is over.

    Args:
        record (:class:`Record`):
            First data record of the run.

    Attributes:
        address (int):
            Address of the first byte of the run.

        byte_count (int):
            Number of bytes accumulated so far.
    """

    def __init__(self, record: Record):

        self.address: int = record.address
        self.byte_count: int = record.byte_count
        self._chunks: List[str] = [record.data]

    def append(self, record: Record) -> None:
        r"""Appends the data of a contiguous record."""

        self.byte_count += record.byte_count
        self._chunks.append(record.data)
        logger.debug('merged %d bytes at 0x%04X into run at 0x%04X',
                     record.byte_count, record.address, self.address)

    def can_append(self, record: Record) -> bool:
        r"""Tells whether `record` continues this run exactly.

        Examples:
            >>> from ihexcodec.parser import PendingRun
            >>> from ihexcodec.records import Record
            >>> run = PendingRun(Record.create_data(0, b'a'))
            >>> run.can_append(Record.create_data(1, b'b'))
            True
            >>> run.can_append(Record.create_data(5, b'c'))
            False
        """

        return record.kind.is_data() and record.address == self.address + self.byte_count

    def feed(self, record: Record) -> Tuple[MergeState, List[Record]]:

        if record.kind.is_data():
            if self.can_append(record):
                self.append(record)
                return self, []
            return PendingRun(record), [self.to_record()]

        return NoPending(), [self.to_record(), record]

    def flush(self) -> List[Record]:

        return [self.to_record()]

    def to_record(self) -> Record:
        r"""Builds the cumulative data record of the run."""

        return Record(RecordKind.DATA,
                      address=self.address,
                      byte_count=self.byte_count,
                      data=''.join(self._chunks))


class Parser:
    r"""Intel HEX record assembler.

    A state machine pulling fields from a tokenizer, one line at a time, only
    as far as needed to produce the next record.

    Iteration is lazy and single pass: a parser cannot be iterated twice.

    On the first error, the pending data run is emitted before the
    :attr:`~.records.RecordKind.PARSE_ERROR` record, then parsing stops.
    The error record is thus the last one, and no data parsed so far is
    lost.
    Malformed field text and record kinds other than ``00``..``05`` are
    errors as well, so that any field sequence can be fed without raising.

    Args:
        fields (iterable):
            Sequence of :class:`Field` tokens, usually from
            :func:`~.fields.tokenize`.
            Running out of fields counts as the end of the stream.

        check_overflow (bool):
            If true, a line whose data runs past address ``0xFFFF`` is a
            parse error.
            Unchecked by default.

    Examples:
        >>> from ihexcodec.fields import tokenize
        >>> from ihexcodec.parser import Parser
        >>> text = ':0100000041BE\n:0100010042BC\n:00000001FF\n'
        >>> for record in Parser(tokenize(text)):
        ...     print(record)
        {Address:0000 ByteCount:2 Data:4142}
        EOF
    """

    def __init__(
        self,
        fields: Iterable[Field],
        check_overflow: bool = False,
    ):

        self._fields: Iterator[Field] = iter(fields)
        self._check_overflow: bool = check_overflow
        self._last: Field = Field(FieldKind.END_OF_STREAM)
        self._merge: MergeState = NoPending()
        self._pending: Deque[Record] = collections.deque()
        self._consumed: bool = False

        # Line being assembled
        self._byte_count: int = 0
        self._address: int = 0
        self._kind: RecordKind = RecordKind.DATA
        self._data: str = ''

    def __iter__(self) -> Iterator[Record]:

        if self._consumed:
            raise RuntimeError('parser already consumed')
        self._consumed = True
        return self._run()

    def _run(self) -> Iterator[Record]:

        state = self._parse_start
        while state is not None:
            state = state()

            while self._pending:
                yield self._pending.popleft()

    # ------------------------------------------------------------------------

    def _accept_value(self, kind: FieldKind) -> Optional[str]:

        field = self._next()
        self._last = field
        if field.kind == kind:
            return field.text
        return None

    def _emit(self, records: List[Record]) -> None:

        for record in records:
            logger.debug('emitting %s record at 0x%04X (%d bytes)',
                         record.kind.name, record.address, record.byte_count)
            self._pending.append(record)

    def _error(self, message: str):

        logger.debug('parse error: %s', message)
        self._emit(self._merge.flush())
        self._merge = NoPending()
        self._emit([Record.create_parse_error(message)])
        return None

    def _next(self) -> Field:

        try:
            return next(self._fields)
        except StopIteration:
            return Field(FieldKind.END_OF_STREAM)

    def _unexpected(self, expected: FieldKind):

        found = self._last
        if found.kind == FieldKind.ERROR:
            message = found.text
        else:
            message = (f'expected {FIELD_LABELS[expected]} '
                       f'but got {FIELD_LABELS[found.kind]}')
        return self._error(message)

    # ------------------------------------------------------------------------

    def _parse_start(self):

        field = self._next()
        self._last = field
        if field.kind == FieldKind.END_OF_STREAM:
            return self._parse_end
        if field.kind != FieldKind.START_MARKER:
            return self._unexpected(FieldKind.START_MARKER)

        text = self._accept_value(FieldKind.BYTE_COUNT)
        if text is None:
            return self._unexpected(FieldKind.BYTE_COUNT)
        try:
            self._byte_count = _hex_value(text, 2)
        except ValueError:
            return self._error(f'failed to parse byte count: {text!r}')

        text = self._accept_value(FieldKind.ADDRESS)
        if text is None:
            return self._unexpected(FieldKind.ADDRESS)
        try:
            self._address = _hex_value(text, 4)
        except ValueError:
            return self._error(f'failed to parse address: {text!r}')

        text = self._accept_value(FieldKind.RECORD_KIND)
        if text is None:
            return self._unexpected(FieldKind.RECORD_KIND)
        try:
            self._kind = _line_kind(text)
        except ValueError:
            return self._error(f'failed to parse record kind: {text!r}')

        self._data = ''
        return self._parse_data

    def _parse_data(self):

        if self._byte_count > 0:
            text = self._accept_value(FieldKind.DATA)
            if text is None:
                return self._unexpected(FieldKind.DATA)
            self._data = text

        return self._parse_checksum

    def _parse_checksum(self):

        text = self._accept_value(FieldKind.CHECKSUM)
        if text is None:
            return self._unexpected(FieldKind.CHECKSUM)

        try:
            value = _hex_value(text, 2)
        except ValueError:
            return self._error(f'failed to parse checksum: {text!r}')

        try:
            record = Record(self._kind,
                            address=self._address,
                            byte_count=self._byte_count,
                            data=self._data)
        except ValueError as exc:
            return self._error(f'failed to parse record: {exc}')

        expected = record.compute_checksum()
        if value != expected:
            return self._error(f'invalid checksum: expected '
                               f'{format_checksum(expected)} but got {text}')

        if self._check_overflow and record.endex > ADDRESS_MAX + 1:
            return self._error(f'address overflow: {record.byte_count} bytes '
                               f'at 0x{record.address:04X}')

        return self._parse_after(record)

    def _parse_after(self, record: Record):

        self._merge, emitted = self._merge.feed(record)
        self._emit(emitted)

        if record.kind.is_eof():
            return None
        return self._parse_start

    def _parse_end(self):

        self._emit(self._merge.flush())
        self._merge = NoPending()
        return None


def parse(
    fields: Iterable[Field],
    check_overflow: bool = False,
) -> Iterator[Record]:
    r"""Assembles records from fields.

    Args:
        fields (iterable):
            Sequence of :class:`Field` tokens.

        check_overflow (bool):
            See :class:`Parser`.

    Returns:
        iterator: Lazy, single pass sequence of :class:`Record`.

    See Also:
        :class:`Parser`
        :func:`parse_string`
    """

    return iter(Parser(fields, check_overflow=check_overflow))


def parse_string(
    text: Union[str, AnyBytes],
    check_overflow: bool = False,
) -> Iterator[Record]:
    r"""Parses Intel HEX text into records.

    Args:
        text (str):
            Whole Intel HEX text.

        check_overflow (bool):
            See :class:`Parser`.

    Returns:
        iterator: Lazy, single pass sequence of :class:`Record`.

    Examples:
        >>> from ihexcodec.parser import parse_string
        >>> [str(record) for record in parse_string(':01000000CB34\n')]
        ['{Address:0000 ByteCount:1 Data:CB}']
        >>> [str(record) for record in parse_string(':01000000CB35\n')]
        ['invalid checksum: expected 34 but got 35']
    """

    return parse(tokenize(text), check_overflow=check_overflow)
