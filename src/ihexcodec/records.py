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

r"""Intel HEX logical records.

See Also:
    `<https://en.wikipedia.org/wiki/Intel_HEX>`_
"""

import enum
from typing import Any
from typing import MutableMapping
from typing import Sequence
from typing import Union

from .base import ADDRESS_MAX
from .base import HEX_DIGITS
from .base import AnyBytes
from .base import EllipsisType
from .utils import chop
from .utils import hexlify
from .utils import unhexlify


class RecordKind(enum.IntEnum):
    r"""Intel HEX record kind.

    The first six values are the record type codes written into each line.
    :attr:`PARSE_ERROR` never appears in a line: it marks a record carrying
    a parser diagnostic instead of data.
    """

    DATA = 0
    r"""Binary data."""

    END_OF_FILE = 1
    r"""End of file."""

    EXTENDED_SEGMENT_ADDRESS = 2
    r"""Extended segment address (recognized, not interpreted)."""

    START_SEGMENT_ADDRESS = 3
    r"""Start segment address (recognized, not interpreted)."""

    EXTENDED_LINEAR_ADDRESS = 4
    r"""Extended linear address (recognized, not interpreted)."""

    START_LINEAR_ADDRESS = 5
    r"""Start linear address (recognized, not interpreted)."""

    PARSE_ERROR = 6
    r"""Parser diagnostic."""

    def is_data(self) -> bool:

        return self == 0

    def is_eof(self) -> bool:

        return self == 1

    def is_error(self) -> bool:

        return self == 6


LINE_KINDS: Sequence[RecordKind] = [
    RecordKind.DATA,
    RecordKind.END_OF_FILE,
    RecordKind.EXTENDED_SEGMENT_ADDRESS,
    RecordKind.START_SEGMENT_ADDRESS,
    RecordKind.EXTENDED_LINEAR_ADDRESS,
    RecordKind.START_LINEAR_ADDRESS,
]
r"""Record kinds which can be written into a line."""


def checksum(
    byte_count: int,
    address: int,
    kind: int,
    data: str = '',
) -> int:
    r"""Computes the checksum of a line.

    The checksum is the two's complement of the 8-bit sum of the byte count,
    the address high and low bytes, the record kind code, and each data byte.

    Args:
        byte_count (int):
            Byte count field value.

        address (int):
            Address field value.

        kind (int):
            Record kind code.

        data (str):
            Hexadecimal data field.

    Returns:
        int: Checksum byte.

    Examples:
        >>> from ihexcodec.records import checksum
        >>> checksum(1, 0x0000, 0, 'CB')
        52
        >>> checksum(0, 0x0000, 1)
        255
        >>> hex(checksum(3, 0x0030, 0, '02337A'))
        '0x1e'
    """

    total = byte_count & 0xFF
    total = (total + ((address >> 8) & 0xFF)) & 0xFF
    total = (total + (address & 0xFF)) & 0xFF
    total = (total + (kind & 0xFF)) & 0xFF
    for pair in chop(data, 2):
        total = (total + int(pair, 16)) & 0xFF
    return ((~total) + 1) & 0xFF


def format_checksum(value: int) -> str:
    r"""Formats a checksum byte as two uppercase hexadecimal digits.

    Examples:
        >>> format_checksum(0x1E)
        '1E'
    """

    return f'{value & 0xFF:02X}'


class Record:
    r"""Logical Intel HEX record.

    A *logical* record is either a control marker (e.g. *End Of File*), a
    parser diagnostic, or a contiguous run of data bytes starting at
    :attr:`address`.
    A data record may hold more than 255 bytes: the encoder splits it into as
    many lines as needed.

    Records are immutable once built.

    Args:
        kind (:class:`RecordKind`):
            Record kind.

        address (int):
            Address of the first data byte.

        byte_count (int):
            Number of data bytes.
            ``Ellipsis`` computes it from `data`.

        data (str):
            Uppercase hexadecimal data, two digits per byte.
            For :attr:`RecordKind.PARSE_ERROR`, the diagnostic message.

        validate (bool):
            If true, :meth:`validate` is called upon initialization.

    Examples:
        >>> from ihexcodec.records import Record, RecordKind
        >>> record = Record(RecordKind.DATA, address=0x1234, data='CAFE')
        >>> record.byte_count
        2
        >>> str(record)
        '{Address:1234 ByteCount:2 Data:CAFE}'
    """

    EQUALITY_KEYS: Sequence[str] = [
        'address',
        'byte_count',
        'data',
        'kind',
    ]

    __slots__ = ('_address', '_byte_count', '_data', '_kind')

    def __eq__(self, other: Any) -> bool:

        return not self != other

    def __hash__(self) -> int:

        return hash((self._kind, self._address, self._byte_count, self._data))

    def __init__(
        self,
        kind: Union[RecordKind, int],
        address: int = 0,
        byte_count: Union[int, EllipsisType] = Ellipsis,
        data: str = '',
        validate: bool = True,
    ):

        kind = RecordKind(kind)
        if byte_count is Ellipsis:
            byte_count = 0 if kind.is_error() else len(data) // 2

        self._kind: RecordKind = kind
        self._address: int = address.__index__()
        self._byte_count: int = byte_count.__index__()
        self._data: str = data

        if validate:
            self.validate()

    def __ne__(self, other: Any) -> bool:

        for key in self.EQUALITY_KEYS:
            if not hasattr(other, key):
                return True
            if getattr(self, key) != getattr(other, key):
                return True

        return False

    def __repr__(self) -> str:

        meta = self.get_meta()
        text = f'<{self.__class__!s} @0x{id(self):08X} '
        text += ' '.join(f'{key!s}:={value!r}' for key, value in meta.items())
        text += '>'
        return text

    def __str__(self) -> str:

        kind = self._kind
        if kind.is_data():
            return (f'{{Address:{self._address:04X} '
                    f'ByteCount:{self._byte_count} '
                    f'Data:{self._data}}}')
        elif kind.is_eof():
            return 'EOF'
        else:
            return self._data

    @property
    def address(self) -> int:
        r"""int: Address of the first data byte."""

        return self._address

    @property
    def byte_count(self) -> int:
        r"""int: Number of data bytes."""

        return self._byte_count

    def compute_checksum(self) -> int:
        r"""Computes the line checksum.

        Meaningful for records fitting a single line (up to 255 bytes); the
        byte count is truncated to 8 bits otherwise.

        Returns:
            int: Checksum byte.

        Raises:
            ValueError: Parse error records have no checksum.

        Examples:
            >>> from ihexcodec.records import Record
            >>> Record.create_end_of_file().compute_checksum()
            255
            >>> Record.create_data(0, b'\xCB').compute_checksum()
            52
        """

        if self._kind.is_error():
            raise ValueError('parse error record has no checksum')

        return checksum(self._byte_count, self._address, self._kind, self._data)

    @classmethod
    def create_data(
        cls,
        address: int,
        data: AnyBytes,
    ) -> 'Record':
        r"""Creates a data record from raw binary data.

        Args:
            address (int):
                Address of the first byte.

            data (bytes):
                Raw binary payload, of any length.

        Returns:
            :class:`Record`: Data record.

        Raises:
            ValueError: Address overflow.

        Examples:
            >>> from ihexcodec.records import Record
            >>> str(Record.create_data(0x10, b'abc'))
            '{Address:0010 ByteCount:3 Data:616263}'
        """

        address = address.__index__()
        if not 0 <= address <= ADDRESS_MAX:
            raise ValueError('address overflow')

        record = cls(RecordKind.DATA, address=address, data=hexlify(data))
        return record

    @classmethod
    def create_end_of_file(cls) -> 'Record':
        r"""Creates an *End Of File* record."""

        return cls(RecordKind.END_OF_FILE)

    @classmethod
    def create_parse_error(cls, message: str) -> 'Record':
        r"""Creates a parse error record carrying `message`."""

        return cls(RecordKind.PARSE_ERROR, data=str(message))

    @property
    def data(self) -> str:
        r"""str: Hexadecimal data, or the diagnostic of a parse error."""

        return self._data

    @property
    def endex(self) -> int:
        r"""int: Exclusive end address of the data."""

        return self._address + self._byte_count

    def get_meta(self) -> MutableMapping[str, Any]:

        return {key: getattr(self, key) for key in self.EQUALITY_KEYS}

    @property
    def kind(self) -> RecordKind:
        r""":class:`RecordKind`: Record kind."""

        return self._kind

    def to_bytes(self) -> bytes:
        r"""Converts the hexadecimal data into raw bytes.

        Raises:
            ValueError: Parse error records have no binary data.

        Examples:
            >>> from ihexcodec.records import Record, RecordKind
            >>> Record(RecordKind.DATA, data='616263').to_bytes()
            b'abc'
        """

        if self._kind.is_error():
            raise ValueError('parse error record has no binary data')

        return unhexlify(self._data)

    def validate(self) -> 'Record':
        r"""Validates the record attributes.

        Returns:
            :class:`Record`: *self*.

        Raises:
            ValueError: Invalid attribute value.

        Examples:
            >>> from ihexcodec.records import Record, RecordKind
            >>> Record(RecordKind.DATA, byte_count=2, data='CB')
            Traceback (most recent call last):
                ...
            ValueError: data size mismatch
        """

        if self._byte_count < 0:
            raise ValueError('count overflow')

        if not 0 <= self._address <= ADDRESS_MAX:
            raise ValueError('address overflow')

        if self._kind.is_error():
            return self

        if len(self._data) != self._byte_count * 2:
            raise ValueError('data size mismatch')

        if any(c not in HEX_DIGITS for c in self._data):
            raise ValueError('invalid data digits')

        return self
