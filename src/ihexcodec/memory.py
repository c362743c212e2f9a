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

r"""Conversion between records and sparse memory.

Data records map to the blocks of a :class:`bytesparse.Memory`, which lets
callers handle the binary image instead of the records themselves.
"""

from typing import Iterable
from typing import List
from typing import Optional

from bytesparse import Memory
from bytesparse.base import MutableMemory

from .base import ADDRESS_MAX
from .records import Record


def records_to_memory(
    records: Iterable[Record],
    memory: Optional[MutableMemory] = None,
) -> MutableMemory:
    r"""Writes data records into memory.

    Records are processed in order, until the *End Of File* record.
    Later data overwrites earlier data where addresses overlap.

    Args:
        records (iterable):
            Logical records, usually from :func:`~.parser.parse_string`.

        memory (:class:`bytesparse.Memory`):
            Target memory; a new one if ``None``.

    Returns:
        :class:`bytesparse.Memory`: Target memory.

    Raises:
        ValueError: A parse error record was found; its diagnostic is the
            exception message.

    Examples:
        >>> from ihexcodec.memory import records_to_memory
        >>> from ihexcodec.parser import parse_string
        >>> text = ':0100000041BE\n:0100100042AD\n:00000001FF\n'
        >>> records_to_memory(parse_string(text)).to_blocks()
        [[0, b'A'], [16, b'B']]
    """

    if memory is None:
        memory = Memory()

    for record in records:
        kind = record.kind

        if kind.is_error():
            raise ValueError(record.data)

        if kind.is_data():
            memory.write(record.address, record.to_bytes())

        elif kind.is_eof():
            break

    return memory


def memory_to_records(
    memory: MutableMemory,
    eof: bool = True,
) -> List[Record]:
    r"""Builds data records out of memory.

    Each contiguous memory block becomes a logical data record.

    Args:
        memory (:class:`bytesparse.Memory`):
            Source memory.

        eof (bool):
            Appends an *End Of File* record.

    Returns:
        list: Logical records, in address order.

    Raises:
        ValueError: Memory beyond address ``0xFFFF``.

    Examples:
        >>> from bytesparse import Memory
        >>> from ihexcodec.memory import memory_to_records
        >>> memory = Memory.from_bytes(b'abc', offset=0x10)
        >>> [str(record) for record in memory_to_records(memory)]
        ['{Address:0010 ByteCount:3 Data:616263}', 'EOF']
    """

    records = []
    for start, data in memory.to_blocks():
        if start + len(data) > ADDRESS_MAX + 1:
            raise ValueError('address overflow')
        records.append(Record.create_data(start, data))

    if eof:
        records.append(Record.create_end_of_file())

    return records
