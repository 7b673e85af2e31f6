import pytest

import rlp_codec
from errors import EncodingError


def test_zero_is_the_empty_string():
    assert rlp_codec.encode_uint(0) == b''
    assert rlp_codec.encode(0) == b'\x80'
    assert rlp_codec.encode([0, b'']) == b'\xc2\x80\x80'


@pytest.mark.parametrize('n', [0, 1, 0x7f, 0x80, 0xff, 0x100, 1024, 2 ** 64, 2 ** 256 - 1])
def test_integers_are_minimal_and_round_trip(n):
    serial = rlp_codec.encode_uint(n)
    if n:
        assert serial[0] != 0
    assert rlp_codec.decode_uint(serial) == n
    assert rlp_codec.decode_uint(rlp_codec.decode(rlp_codec.encode(n))) == n


def test_known_encodings():
    assert rlp_codec.encode(b'\x7f') == b'\x7f'
    assert rlp_codec.encode(b'\x80') == b'\x81\x80'
    assert rlp_codec.encode(1024) == b'\x82\x04\x00'
    assert rlp_codec.encode([]) == b'\xc0'
    assert rlp_codec.encode([b'cat', b'dog']) == bytes.fromhex('c88363617483646f67')
    assert rlp_codec.encode(b'a' * 56)[:2] == b'\xb8\x38'


def test_addresses_keep_leading_zero_bytes():
    address = bytes(19) + b'\x01'
    assert rlp_codec.encode(address) == b'\x94' + address
    assert rlp_codec.encode(bytes(20)) == b'\x94' + bytes(20)


@pytest.mark.parametrize('item', [-1, [1, -5], True, 'abc', 1.5, None, {'a': 1}])
def test_invalid_items_are_rejected(item):
    with pytest.raises(EncodingError):
        rlp_codec.encode(item)


def test_negative_uint_is_rejected():
    with pytest.raises(EncodingError):
        rlp_codec.encode_uint(-1)


def test_leading_zero_is_not_canonical():
    with pytest.raises(EncodingError):
        rlp_codec.decode_uint(b'\x00\x01')
    with pytest.raises(EncodingError):
        rlp_codec.decode_uint([b'\x01'])


def test_decode_rejects_trailing_bytes():
    with pytest.raises(EncodingError):
        rlp_codec.decode(b'\x80\x80')
    with pytest.raises(EncodingError):
        rlp_codec.decode('0x80')


def test_decode_nested():
    assert rlp_codec.decode(bytes.fromhex('c88363617483646f67')) == [b'cat', b'dog']


def test_to_address():
    expected = bytes.fromhex('f19588ce7ef802f26bf7a7d9d96444dd4ed8da59')
    assert rlp_codec.to_address('0xf19588Ce7eF802F26bf7a7d9d96444dD4Ed8DA59') == expected
    assert rlp_codec.to_address('f19588ce7ef802f26bf7a7d9d96444dd4ed8da59') == expected
    assert rlp_codec.to_address(expected) == expected
    for bad in ('0x1234', '0xzz', bytes(19), 42):
        with pytest.raises(EncodingError):
            rlp_codec.to_address(bad)


def test_decode_address_requires_twenty_bytes():
    assert rlp_codec.decode_address(bytes(20)) == bytes(20)
    with pytest.raises(EncodingError):
        rlp_codec.decode_address(b'')
    with pytest.raises(EncodingError):
        rlp_codec.decode_address([bytes(20)])
