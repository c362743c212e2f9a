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

r"""Intel HEX tokenizer.

The tokenizer scans raw text and produces a strict left-to-right sequence of
typed :class:`Field` tokens, one per grammar element of each line:

.. code-block:: none

    : BB AAAA TT DD... CC

Only the *shape* of each field is checked here; checksums and record
semantics are up to :mod:`ihexcodec.parser`.
The first malformed field turns into an :attr:`FieldKind.ERROR` token, which
terminates the sequence.
"""

import collections
import enum
import logging
from typing import Any
from typing import Callable
from typing import Deque
from typing import Iterator
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import Union

from .base import HEX_DIGITS
from .base import AnyBytes

logger = logging.getLogger(__name__)

RECORD_KIND_CODES: Sequence[str] = ['00', '01', '02', '03', '04', '05']
r"""Whitelist of the record kind field values."""

NEWLINES: str = '\r\n'


class FieldKind(enum.IntEnum):
    r"""Kind of a :class:`Field` token."""

    START_MARKER = 0
    BYTE_COUNT = 1
    ADDRESS = 2
    RECORD_KIND = 3
    DATA = 4
    CHECKSUM = 5
    ERROR = 6
    END_OF_STREAM = 7  # end of the text, not the End Of File record


FIELD_LABELS: Mapping[FieldKind, str] = {
    FieldKind.START_MARKER: 'start marker',
    FieldKind.BYTE_COUNT: 'byte count',
    FieldKind.ADDRESS: 'address',
    FieldKind.RECORD_KIND: 'record kind',
    FieldKind.DATA: 'data',
    FieldKind.CHECKSUM: 'checksum',
    FieldKind.ERROR: 'error',
    FieldKind.END_OF_STREAM: 'end of stream',
}
r"""Human readable name of each field kind."""

TOKEN_KEYS: Mapping[FieldKind, str] = {
    FieldKind.START_MARKER: 'begin',
    FieldKind.BYTE_COUNT: 'count',
    FieldKind.ADDRESS: 'address',
    FieldKind.RECORD_KIND: 'tag',
    FieldKind.DATA: 'data',
    FieldKind.CHECKSUM: 'checksum',
    FieldKind.ERROR: 'error',
    FieldKind.END_OF_STREAM: 'end',
}
r"""Token key of each field kind, as per :data:`~.base.TOKEN_COLOR_CODES`."""


class Field:
    r"""Token produced by the tokenizer.

    Args:
        kind (:class:`FieldKind`):
            Field kind.

        text (str):
            Exact text consumed from the input, as encountered.
            For :attr:`FieldKind.ERROR`, the diagnostic message.
    """

    __slots__ = ('_kind', '_text')

    def __eq__(self, other: Any) -> bool:

        if not isinstance(other, Field):
            return NotImplemented
        return self._kind == other._kind and self._text == other._text

    def __hash__(self) -> int:

        return hash((self._kind, self._text))

    def __init__(self, kind: FieldKind, text: str = ''):

        self._kind: FieldKind = FieldKind(kind)
        self._text: str = text

    def __repr__(self) -> str:

        return f'Field({self._kind.name}, {self._text!r})'

    def __str__(self) -> str:

        kind = self._kind
        if kind == FieldKind.START_MARKER:
            return ':'
        elif kind == FieldKind.BYTE_COUNT:
            return 'ByteCount  ' + self._text
        elif kind == FieldKind.ADDRESS:
            return 'Address    ' + self._text
        elif kind == FieldKind.RECORD_KIND:
            return 'RecordType ' + self._text
        elif kind == FieldKind.DATA:
            return 'Data       ' + self._text
        elif kind == FieldKind.CHECKSUM:
            return 'Checksum   ' + self._text
        return self._text

    @property
    def kind(self) -> FieldKind:
        r""":class:`FieldKind`: Field kind."""

        return self._kind

    @property
    def text(self) -> str:
        r"""str: Consumed text, or error message."""

        return self._text


_State = Optional[Callable[[], Any]]


class Tokenizer:
    r"""Intel HEX tokenizer.

    A small state machine scanning `text` through an internal cursor.
    Each state consumes one field and returns the next state; the sequence
    ends with either :attr:`FieldKind.END_OF_STREAM` or
    :attr:`FieldKind.ERROR`.

    Iteration is lazy and single pass: fields are scanned only when pulled,
    and a tokenizer cannot be iterated twice.

    Args:
        text (str):
            Whole Intel HEX text to scan.

    Examples:
        >>> from ihexcodec.fields import Tokenizer
        >>> for field in Tokenizer(':00000001FF\n'):
        ...     print(repr(field))
        Field(START_MARKER, ':')
        Field(BYTE_COUNT, '00')
        Field(ADDRESS, '0000')
        Field(RECORD_KIND, '01')
        Field(CHECKSUM, 'FF')
        Field(END_OF_STREAM, '')
    """

    def __init__(self, text: Union[str, AnyBytes]):

        if isinstance(text, (bytes, bytearray, memoryview)):
            text = bytes(text).decode('latin-1')

        self._text: str = text
        self._start: int = 0  # start of the current field
        self._pos: int = 0  # cursor
        self._width: int = 0  # width of the last character read
        self._byte_count: int = 0  # of the current line
        self._line: int = 1
        self._pending: Deque[Field] = collections.deque()
        self._consumed: bool = False

    def __iter__(self) -> Iterator[Field]:

        if self._consumed:
            raise RuntimeError('tokenizer already consumed')
        self._consumed = True
        return self._run()

    def _run(self) -> Iterator[Field]:

        state: _State = self._lex_start_marker
        while state is not None:
            state = state()

            while self._pending:
                yield self._pending.popleft()

    # ------------------------------------------------------------------------

    def _accept(self, valid: str) -> bool:

        char = self._next()
        if char is not None and char in valid:
            return True
        self._backup()
        return False

    def _accept_candidates(self, candidates: Sequence[str]) -> bool:

        for candidate in candidates:
            if self._text.startswith(candidate, self._pos):
                self._pos += len(candidate)
                return True
        return False

    def _accept_count(self, valid: str, count: int) -> bool:

        pos = self._pos
        for _ in range(count):
            char = self._next()
            if char is None or char not in valid:
                self._pos = pos
                return False
        return True

    def _backup(self) -> None:

        self._pos -= self._width

    def _describe(self, width: int) -> str:

        found = self._text[self._pos:(self._pos + width)]
        return repr(found) if found else 'end of input'

    def _emit(self, kind: FieldKind) -> None:

        self._pending.append(Field(kind, self._text[self._start:self._pos]))
        self._start = self._pos

    def _error(self, message: str) -> _State:

        logger.debug('line %d, column %d: %s',
                     self._line, self._pos - self._line_start() + 1, message)
        self._pending.append(Field(FieldKind.ERROR, message))
        return None

    def _ignore(self) -> None:

        self._start = self._pos

    def _line_start(self) -> int:

        return self._text.rfind('\n', 0, self._pos) + 1

    def _next(self) -> Optional[str]:

        if self._pos >= len(self._text):
            self._width = 0
            return None
        char = self._text[self._pos]
        self._width = 1
        self._pos += 1
        return char

    def _peek(self) -> Optional[str]:

        char = self._next()
        self._backup()
        return char

    # ------------------------------------------------------------------------

    def _lex_start_marker(self) -> _State:

        if self._accept(':'):
            self._emit(FieldKind.START_MARKER)
            return self._lex_byte_count
        return self._error(f"expected ':' but got: {self._describe(1)}")

    def _lex_byte_count(self) -> _State:

        if self._accept_count(HEX_DIGITS, 2):
            self._byte_count = int(self._text[self._start:self._pos], 16)
            self._emit(FieldKind.BYTE_COUNT)
            return self._lex_address
        return self._error(f'expected byte count but got: {self._describe(2)}')

    def _lex_address(self) -> _State:

        if self._accept_count(HEX_DIGITS, 4):
            self._emit(FieldKind.ADDRESS)
            return self._lex_record_kind
        return self._error(f'expected address but got: {self._describe(4)}')

    def _lex_record_kind(self) -> _State:

        if self._accept_candidates(RECORD_KIND_CODES):
            self._emit(FieldKind.RECORD_KIND)
            return self._lex_data
        return self._error(f'expected record kind but got: {self._describe(2)}')

    def _lex_data(self) -> _State:

        count = self._byte_count
        if count == 0:
            return self._lex_checksum

        if self._accept_count(HEX_DIGITS, count * 2):
            self._emit(FieldKind.DATA)
            return self._lex_checksum
        return self._error(f'expected {count} bytes of data but failed')

    def _lex_checksum(self) -> _State:

        if self._accept_count(HEX_DIGITS, 2):
            self._emit(FieldKind.CHECKSUM)
            return self._lex_newline
        return self._error(f'expected checksum but got: {self._describe(2)}')

    def _lex_newline(self) -> _State:

        while self._accept(NEWLINES):
            if self._text[self._pos - 1] == '\n':
                self._line += 1
        self._ignore()

        if self._peek() is None:
            self._emit(FieldKind.END_OF_STREAM)
            return None
        return self._lex_start_marker


def tokenize(text: Union[str, AnyBytes]) -> Iterator[Field]:
    r"""Tokenizes Intel HEX text.

    Args:
        text (str):
            Whole Intel HEX text.

    Returns:
        iterator: Lazy, single pass sequence of :class:`Field` tokens.

    See Also:
        :class:`Tokenizer`

    Examples:
        >>> from ihexcodec.fields import tokenize
        >>> [field.text for field in tokenize(':01000000CB34\n')]
        [':', '01', '0000', '00', 'CB', '34', '']
        >>> list(tokenize(':01000000cb34\n'))[-1]
        Field(ERROR, 'expected 1 bytes of data but failed')
    """

    return iter(Tokenizer(text))
