import pytest

import ihexcodec.base as _hb
from ihexcodec.base import ADDRESS_MAX
from ihexcodec.base import HEX_DIGITS
from ihexcodec.base import colorize_tokens


@pytest.fixture
def fake_token_color_codes(request):
    backup = _hb.TOKEN_COLOR_CODES
    _hb.TOKEN_COLOR_CODES = {key: (b'[%s]' % key.encode()) for key in backup}
    yield
    _hb.TOKEN_COLOR_CODES = backup


def test_constants():
    assert HEX_DIGITS == '0123456789ABCDEF'
    assert ADDRESS_MAX == 0xFFFF


def test_token_color_codes_keys():
    keys = {'', '<', '>', 'address', 'begin', 'checksum', 'count',
            'data', 'dataalt', 'end', 'error', 'tag'}
    assert set(_hb.TOKEN_COLOR_CODES) == keys


def test_colorize_tokens_altdata(fake_token_color_codes):

    tokens = {
        '':         b'(empty)',
        'address':  b'(address)',
        'begin':    b'(begin)',
        'checksum': b'(checksum)',
        'count':    b'(count)',
        'data':     b'AABBCCD',
        'end':      b'(end)',
        'error':    b'(error)',
        'tag':      b'(tag)',
    }
    expected = {
        '':         b'[](empty)',
        '<':        b'[<]',
        '>':        b'[>]',
        'address':  b'[address](address)',
        'begin':    b'[begin](begin)',
        'checksum': b'[checksum](checksum)',
        'count':    b'[count](count)',
        'data':     b'[data]AA[dataalt]BB[data]CC[dataalt]D',
        'end':      b'[end](end)',
        'error':    b'[error](error)',
        'tag':      b'[tag](tag)',
    }
    actual = colorize_tokens(tokens, altdata=True)
    assert actual == expected


def test_colorize_tokens_plaindata(fake_token_color_codes):

    tokens = {
        'begin':    b'(begin)',
        'data':     b'AABBCCD',
        'end':      b'(end)',
    }
    expected = {
        '<':        b'[<]',
        '>':        b'[>]',
        'begin':    b'[begin](begin)',
        'data':     b'[data]AABBCCD',
        'end':      b'[end](end)',
    }
    actual = colorize_tokens(tokens, altdata=False)
    assert actual == expected


def test_colorize_tokens_unknown_key(fake_token_color_codes):

    actual = colorize_tokens({'unknown': b'(unknown)'})
    assert actual == {'<': b'[<]', '': b'[](unknown)', '>': b'[>]'}


def test_colorize_tokens_empty_value(fake_token_color_codes):

    actual = colorize_tokens({'data': b'', 'tag': b'00'})
    assert actual == {'<': b'[<]', 'tag': b'[tag]00', '>': b'[>]'}
