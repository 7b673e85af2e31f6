import rlp
from rlp.exceptions import RLPException
from rlp.sedes import Binary, big_endian_int

from errors import EncodingError

ADDRESS_LENGTH = 20
# RLP length prefixes hold at most 8 bytes of length.
MAX_ITEM_LENGTH = 256 ** 8 - 1

address_sedes = Binary.fixed_length(ADDRESS_LENGTH)


def encode(item) -> bytes:
    """
    RLP-encodes a byte string, a non-negative integer or a (nested) list of those.

    Integers use the canonical form: minimal big-endian with no leading zero byte,
    and zero is the empty byte string (so it encodes to 0x80, never to 0x00).
    Byte strings are encoded as they are, which is how addresses keep all 20 bytes.

    Args:
        item (bytes | int | list): The value to encode.

    Returns:
        bytes: The RLP encoding.

    Raises:
        EncodingError: On a negative integer, a bool, a str or any other unsupported type,
                       or a byte string too long for an RLP length prefix.
    """
    _check_item(item)
    try:
        return rlp.encode(item)
    except RLPException as e:
        raise EncodingError(f'cannot RLP-encode item: {e}') from e


def decode(data: bytes):
    """
    Strictly decodes an RLP byte sequence into bytes and nested lists of bytes.
    Trailing bytes after the first item are rejected.
    """
    if not isinstance(data, (bytes, bytearray)):
        raise EncodingError(f'can only decode bytes, got {type(data).__name__}')
    try:
        return rlp.decode(bytes(data), strict=True)
    except RLPException as e:
        raise EncodingError(f'malformed RLP: {e}') from e


def encode_uint(n: int) -> bytes:
    """
    Returns the canonical byte string of an unsigned integer (b'' for zero).
    """
    _check_item(n)
    try:
        return big_endian_int.serialize(n)
    except RLPException as e:
        raise EncodingError(str(e)) from e


def decode_uint(serial: bytes) -> int:
    """
    Inverse of `encode_uint`. A leading zero byte is not canonical and is rejected.
    """
    if not isinstance(serial, bytes):
        raise EncodingError(f'expected an RLP string for an integer, got {type(serial).__name__}')
    try:
        return big_endian_int.deserialize(serial)
    except RLPException as e:
        raise EncodingError(f'non-canonical integer 0x{serial.hex()}') from e


def to_address(value) -> bytes:
    """
    Normalizes an address to its 20 raw bytes.

    Args:
        value (bytes | str): 20 raw bytes or a hex string with or without the '0x' prefix
                             (checksummed or not).

    Returns:
        bytes: The 20-byte address.
    """
    if isinstance(value, str):
        hex_str = value[2:] if value.lower().startswith('0x') else value
        try:
            value = bytes.fromhex(hex_str)
        except ValueError as e:
            raise EncodingError(f'invalid hex address {value!r}') from e
    if not isinstance(value, (bytes, bytearray)) or len(value) != ADDRESS_LENGTH:
        raise EncodingError(f'address must be {ADDRESS_LENGTH} bytes, got {value!r}')
    return bytes(value)


def decode_address(serial) -> bytes:
    if not isinstance(serial, bytes):
        raise EncodingError('expected an RLP string for an address, got a list')
    try:
        return address_sedes.deserialize(serial)
    except RLPException as e:
        raise EncodingError(f'invalid address 0x{serial.hex()}') from e


def _check_item(item):
    # bool is an int subclass but has no place on the wire
    if isinstance(item, bool):
        raise EncodingError(f'cannot RLP-encode a bool ({item})')
    if isinstance(item, int):
        if item < 0:
            raise EncodingError(f'cannot RLP-encode negative integer {item}')
        if item.bit_length() > MAX_ITEM_LENGTH * 8:
            raise EncodingError('integer too large for an RLP string')
    elif isinstance(item, (bytes, bytearray)):
        if len(item) > MAX_ITEM_LENGTH:
            raise EncodingError(f'byte string of length {len(item)} exceeds the RLP length prefix')
    elif isinstance(item, (list, tuple)):
        for element in item:
            _check_item(element)
    else:
        raise EncodingError(f'cannot RLP-encode value of type {type(item).__name__}: {item!r}')
