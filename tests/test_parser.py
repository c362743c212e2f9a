import logging

import pytest

from ihexcodec.fields import Field
from ihexcodec.fields import FieldKind
from ihexcodec.fields import tokenize
from ihexcodec.parser import NoPending
from ihexcodec.parser import Parser
from ihexcodec.parser import PendingRun
from ihexcodec.parser import parse
from ihexcodec.parser import parse_string
from ihexcodec.records import Record
from ihexcodec.records import RecordKind
from ihexcodec.records import checksum

DATA = RecordKind.DATA
ERR = RecordKind.PARSE_ERROR

EOF_LINE = ':00000001FF\n'

LINE_0000 = ':200000000C94AE040C94D6040C94D6040C94D6040C94D6040C94D6040C94D6040C94D60438\n'
LINE_0020 = ':200020000C94D6040C94D6040C9474320C94FB320C94D6040C94D6040C94D6040C94D604D1\n'
DATA_64 = ('0C94AE040C94D6040C94D6040C94D6040C94D6040C94D6040C94D6040C94D604'
           '0C94D6040C94D6040C9474320C94FB320C94D6040C94D6040C94D6040C94D604')


def _line(address, data, kind=0):
    count = len(data) // 2
    value = checksum(count, address, kind, data)
    return f':{count:02X}{address:04X}{kind:02X}{data}{value:02X}\n'


def _data(address, data):
    return Record(DATA, address=address, data=data)


def _replace_text(fields, index, text):
    fields = list(fields)
    fields[index] = Field(fields[index].kind, text)
    return fields


class TestMergeStates:

    def test_no_pending_data(self):
        state, emitted = NoPending().feed(_data(0, 'AA'))
        assert isinstance(state, PendingRun)
        assert emitted == []

    def test_no_pending_other(self):
        record = Record.create_end_of_file()
        initial = NoPending()
        state, emitted = initial.feed(record)
        assert state is initial
        assert emitted == [record]

    def test_no_pending_flush(self):
        assert NoPending().flush() == []

    def test_pending_run_contiguous(self):
        run = PendingRun(_data(0x10, 'AABB'))
        state, emitted = run.feed(_data(0x12, 'CC'))
        assert state is run
        assert emitted == []
        assert run.address == 0x10
        assert run.byte_count == 3
        assert run.to_record() == _data(0x10, 'AABBCC')

    def test_pending_run_gap(self):
        run = PendingRun(_data(0x10, 'AA'))
        state, emitted = run.feed(_data(0x12, 'CC'))
        assert isinstance(state, PendingRun)
        assert state is not run
        assert emitted == [_data(0x10, 'AA')]
        assert state.flush() == [_data(0x12, 'CC')]

    def test_pending_run_overlap(self):
        run = PendingRun(_data(0x10, 'AABB'))
        state, emitted = run.feed(_data(0x11, 'CC'))
        assert state is not run
        assert emitted == [_data(0x10, 'AABB')]

    def test_pending_run_other(self):
        run = PendingRun(_data(0x10, 'AA'))
        eof = Record.create_end_of_file()
        state, emitted = run.feed(eof)
        assert isinstance(state, NoPending)
        assert emitted == [_data(0x10, 'AA'), eof]

    def test_pending_run_flush(self):
        run = PendingRun(_data(0x10, 'AA'))
        run.append(_data(0x11, 'BB'))
        assert run.flush() == [_data(0x10, 'AABB')]

    def test_can_append_non_data(self):
        run = PendingRun(_data(0, 'AA'))
        record = Record(RecordKind.EXTENDED_LINEAR_ADDRESS, address=1, data='0000')
        assert run.can_append(record) is False


class TestParser:

    def test_single_record(self):
        records = list(parse_string(':01000000CB34\n'))
        assert records == [_data(0, 'CB')]
        record = records[0]
        assert record.byte_count == 1
        assert record.address == 0
        assert record.kind is DATA
        assert record.data == 'CB'

    def test_merge_two_lines(self):
        records = list(parse_string(LINE_0000 + LINE_0020))
        assert records == [Record(DATA, address=0, byte_count=64, data=DATA_64)]

    def test_merge_contiguous(self):
        text = _line(0, 'AA') + _line(1, 'BB')
        assert list(parse_string(text)) == [_data(0, 'AABB')]

    def test_no_merge_gap(self):
        text = _line(0, 'AA') + _line(5, 'CC')
        assert list(parse_string(text)) == [_data(0, 'AA'), _data(5, 'CC')]

    def test_no_merge_backwards(self):
        text = _line(5, 'CC') + _line(0, 'AA') + _line(1, 'BB')
        assert list(parse_string(text)) == [_data(5, 'CC'), _data(0, 'AABB')]

    def test_merge_runs(self):
        text = (_line(0, 'AA') + _line(1, 'BB') + _line(2, 'CC')
                + _line(0x10, 'DD') + _line(0x11, 'EE') + EOF_LINE)
        assert list(parse_string(text)) == [
            _data(0, 'AABBCC'),
            _data(0x10, 'DDEE'),
            Record.create_end_of_file(),
        ]

    def test_merge_zero_byte_records(self):
        text = _line(0, '') + _line(0, 'AA') + _line(1, '')
        assert list(parse_string(text)) == [_data(0, 'AA')]

    def test_non_data_flushes(self):
        ela = Record(RecordKind.EXTENDED_LINEAR_ADDRESS, data='0001')
        text = _line(0, 'AA') + _line(0, '0001', kind=4) + _line(1, 'BB') + EOF_LINE
        assert list(parse_string(text)) == [
            _data(0, 'AA'),
            ela,
            _data(1, 'BB'),
            Record.create_end_of_file(),
        ]

    def test_eof_stops(self):
        text = _line(0, 'AA') + EOF_LINE + _line(1, 'BB') + 'garbage'
        assert list(parse_string(text)) == [
            _data(0, 'AA'),
            Record.create_end_of_file(),
        ]

    def test_eof_only(self):
        assert list(parse_string(EOF_LINE)) == [Record.create_end_of_file()]

    def test_missing_eof(self):
        text = _line(0, 'AA') + _line(1, 'BB')
        records = list(parse_string(text))
        assert records == [_data(0, 'AABB')]

    def test_crlf(self):
        text = (_line(0, 'AA') + _line(1, 'BB') + EOF_LINE).replace('\n', '\r\n')
        assert list(parse_string(text)) == [
            _data(0, 'AABB'),
            Record.create_end_of_file(),
        ]

    def test_checksum_accepts_only_computed(self):
        for value in range(0x100):
            records = list(parse_string(f':01000000CB{value:02X}\n'))
            assert len(records) == 1
            if value == 0x34:
                assert records[0] == _data(0, 'CB')
            else:
                assert records[0].kind is ERR

    def test_checksum_error_message(self):
        records = list(parse_string(':01000000CB35\n'))
        assert records == [Record.create_parse_error('invalid checksum: expected 34 but got 35')]

    def test_checksum_error_stops(self):
        text = ':01000000CB00\n' + _line(1, 'BB') + EOF_LINE
        records = list(parse_string(text))
        assert len(records) == 1
        assert records[0].kind is ERR

    def test_error_flushes_pending_first(self):
        text = _line(0, 'AA') + _line(1, 'BB') + ':01000200CC00\n' + _line(3, 'DD')
        records = list(parse_string(text))
        assert records == [
            _data(0, 'AABB'),
            Record.create_parse_error('invalid checksum: expected 31 but got 00'),
        ]

    def test_grammar_error_propagates_message(self):
        text = _line(0, 'AA') + ':0000000006FA\n' + EOF_LINE
        records = list(parse_string(text))
        assert records == [
            _data(0, 'AA'),
            Record.create_parse_error("expected record kind but got: '06'"),
        ]

    def test_empty_text(self):
        records = list(parse_string(''))
        assert records == [Record.create_parse_error("expected ':' but got: end of input")]

    def test_no_fields(self):
        assert list(parse([])) == []

    def test_end_of_stream_only(self):
        assert list(parse([Field(FieldKind.END_OF_STREAM)])) == []

    def test_structural_errors(self):
        sm = Field(FieldKind.START_MARKER, ':')
        bc = Field(FieldKind.BYTE_COUNT, '01')
        ad = Field(FieldKind.ADDRESS, '0000')
        rk = Field(FieldKind.RECORD_KIND, '00')
        da = Field(FieldKind.DATA, 'CB')
        cs = Field(FieldKind.CHECKSUM, '34')
        vector = [
            ([bc], 'expected start marker but got byte count'),
            ([sm, ad], 'expected byte count but got address'),
            ([sm, bc, rk], 'expected address but got record kind'),
            ([sm, bc, ad, da], 'expected record kind but got data'),
            ([sm, bc, ad, rk, cs], 'expected data but got checksum'),
            ([sm, bc, ad, rk, da, sm], 'expected checksum but got start marker'),
            ([sm, bc, ad, rk, da], 'expected checksum but got end of stream'),
        ]
        for fields, message in vector:
            assert list(parse(fields)) == [Record.create_parse_error(message)]

    def test_malformed_field_text(self):
        line = [
            Field(FieldKind.START_MARKER, ':'),
            Field(FieldKind.BYTE_COUNT, '01'),
            Field(FieldKind.ADDRESS, '0000'),
            Field(FieldKind.RECORD_KIND, '00'),
            Field(FieldKind.DATA, 'CB'),
            Field(FieldKind.CHECKSUM, '34'),
        ]
        vector = [
            ((1, 'ZZ'), "failed to parse byte count: 'ZZ'"),
            ((1, '1'), "failed to parse byte count: '1'"),
            ((1, ' 1'), "failed to parse byte count: ' 1'"),
            ((2, '00G0'), "failed to parse address: '00G0'"),
            ((2, '000'), "failed to parse address: '000'"),
            ((3, '06'), "failed to parse record kind: '06'"),
            ((3, '07'), "failed to parse record kind: '07'"),
            ((3, 'FF'), "failed to parse record kind: 'FF'"),
            ((4, 'cb'), 'failed to parse record: invalid data digits'),
            ((4, 'CBCB'), 'failed to parse record: data size mismatch'),
            ((5, '3G'), "failed to parse checksum: '3G'"),
            ((5, '034'), "failed to parse checksum: '034'"),
        ]
        for (index, text), message in vector:
            fields = _replace_text(line, index, text)
            assert list(parse(fields)) == [Record.create_parse_error(message)]

    def test_malformed_field_text_stops(self):
        fields = list(tokenize(_line(0, 'AA')))[:-1]
        fields += [
            Field(FieldKind.START_MARKER, ':'),
            Field(FieldKind.BYTE_COUNT, '01'),
            Field(FieldKind.ADDRESS, '0001'),
            Field(FieldKind.RECORD_KIND, '06'),
            Field(FieldKind.DATA, 'BB'),
            Field(FieldKind.CHECKSUM, '00'),
        ]
        fields += list(tokenize(_line(2, 'CC') + EOF_LINE))
        assert list(parse(fields)) == [
            _data(0, 'AA'),
            Record.create_parse_error("failed to parse record kind: '06'"),
        ]

    def test_fields_without_end_of_stream(self):
        fields = list(tokenize(':01000000CB34\n'))[:-1]
        assert list(parse(fields)) == [_data(0, 'CB')]

    def test_check_overflow(self):
        text = _line(0xFFFF, 'AABB') + EOF_LINE
        assert list(parse_string(text)) == [
            _data(0xFFFF, 'AABB'),
            Record.create_end_of_file(),
        ]
        records = list(parse_string(text, check_overflow=True))
        assert records == [Record.create_parse_error('address overflow: 2 bytes at 0xFFFF')]

    def test_check_overflow_boundary(self):
        text = _line(0xFFFF, 'AA') + EOF_LINE
        records = list(parse_string(text, check_overflow=True))
        assert records[0] == _data(0xFFFF, 'AA')

    def test_lazy(self):
        text = _line(0, 'AA') + _line(5, 'BB') + 'garbage'
        iterator = parse_string(text)
        assert next(iterator) == _data(0, 'AA')

    def test_single_pass(self):
        parser = Parser(tokenize(EOF_LINE))
        list(parser)
        with pytest.raises(RuntimeError, match='parser already consumed'):
            iter(parser)

    def test_logging(self, caplog):
        with caplog.at_level(logging.DEBUG, logger='ihexcodec.parser'):
            list(parse_string(_line(0, 'AA') + _line(1, 'BB') + ':0'))
        messages = [record.getMessage() for record in caplog.records]
        assert any(message.startswith('merged 1 bytes') for message in messages)
        assert any(message.startswith('parse error:') for message in messages)
