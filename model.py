from eth_hash.auto import keccak
from web3 import Web3

import keys
import rlp_codec
from errors import EncodingError, SigningError

SET_CODE_TX_TYPE = 0x04  # EIP-7702 transaction type
AUTHORIZATION_MAGIC = 0x05  # domain separator of the authorization digest
ZERO_ADDRESS = bytes(20)
MAX_AUTH_NONCE = 2 ** 64 - 1
MAX_UINT256 = 2 ** 256 - 1

UNSIGNED_FIELD_COUNT = 10
SIGNED_FIELD_COUNT = UNSIGNED_FIELD_COUNT + 3
AUTHORIZATION_FIELD_COUNT = 6


class BaseTxParams:
    """
    Represents the base parameters for an Ethereum transaction, compatible with
    EIP-1559 (London upgrade) transaction types which include gas tip and fee caps.
    """

    def __init__(self, chain_id: int, nonce: int, gas: int, gas_tip_cap: int, gas_fee_cap: int,
                 to=ZERO_ADDRESS, value=0, data=b''):
        """
        Initializes the base transaction parameters.

        Args:
            chain_id (int): The EIP-155 chain ID of the network (e.g., 1 for Mainnet, 11155111 for Sepolia).
            nonce (int): The transaction count of the sender, used to prevent replay attacks.
            gas (int): The maximum amount of gas the transaction is allowed to consume.
            gas_tip_cap (int): The maximum priority fee (tip) per gas unit (maxPriorityFeePerGas).
            gas_fee_cap (int): The maximum total fee per gas unit, base fee plus tip (maxFeePerGas).
            to (bytes | str): The destination address. A set-code transaction cannot create a contract,
                              so this is a real 20-byte address (usually the sender itself).
            value (int): The amount of Ether (in Wei) to send with the transaction. Defaults to 0.
            data (bytes): The call data of the transaction. Defaults to empty bytes.
        """
        self.chain_id = chain_id
        self.nonce = nonce
        self.gas = gas
        self.gas_tip = gas_tip_cap
        self.gas_fee = gas_fee_cap
        self.to = rlp_codec.to_address(to)
        self.value = value
        self.data = bytes(data)

    def encode(self) -> list:
        """
        Returns the eight leading fields of a typed transaction in wire order.
        """
        return [self.chain_id, self.nonce, self.gas_tip, self.gas_fee,
                self.gas, self.to, self.value, self.data]


class Call:
    """
    One sub-call of a batch executed by the delegate contract.
    The core treats it as opaque; `abi.encode_batch_execute` turns a list of calls into call data.
    """

    def __init__(self, to, value: int = 0, data: bytes = b''):
        self.to = rlp_codec.to_address(to)
        self.value = value
        self.data = bytes(data)

    def encode(self) -> tuple:
        # matches the (bytes data, address to, uint256 value) ABI tuple
        return self.data, Web3.to_checksum_address(self.to), self.value


class AccessTuple:
    """
    Represents an access tuple as defined in EIP-2930. It specifies an address and a list
    of storage keys that a transaction is expected to access.
    """

    def __init__(self, addr, storage_keys: list[bytes]):
        """
        Args:
            addr (bytes | str): The address of the account being accessed.
            storage_keys (list[bytes]): The 32-byte storage keys within that account.
        """
        self.addr = rlp_codec.to_address(addr)
        for key in storage_keys:
            if not isinstance(key, (bytes, bytearray)) or len(key) != 32:
                raise EncodingError(f'storage key must be 32 bytes, got {key!r}')
        self.storage_keys = [bytes(key) for key in storage_keys]

    def encode(self) -> list:
        """
        Encodes the AccessTuple into a list suitable for RLP encoding.

        Returns:
            list: A list containing the address and the list of storage keys.
        """
        return [self.addr, self.storage_keys]

    @classmethod
    def from_list(cls, item) -> 'AccessTuple':
        if not isinstance(item, list) or len(item) != 2 or not isinstance(item[1], list):
            raise EncodingError('access list entry must be [address, [storage keys]]')
        return cls(rlp_codec.decode_address(item[0]), item[1])


class SetCodeAuthorization:
    """
    A signed EIP-7702 authorization tuple: "the code of the signing account is the code of
    `addr`, valid while the account nonce is `nonce`".

    The zero address is a valid delegate and clears any existing delegation.
    """

    def __init__(self, chain_id: int, addr, nonce: int, y_parity: int, r: int, s: int):
        """
        Args:
            chain_id (int): The chain the authorization is valid on (0 means any chain).
            addr (bytes | str): The delegate contract address.
            nonce (int): The account nonce at which the authorization is applied.
            y_parity (int): Recovery bit of the signature (0 or 1).
            r (int): The 'r' component of the signature.
            s (int): The 's' component of the signature.
        """
        if not 0 <= nonce <= MAX_AUTH_NONCE:
            raise EncodingError(f'authorization nonce out of range: {nonce}')
        if y_parity not in (0, 1):
            raise SigningError(f'authorization y_parity must be 0 or 1, got {y_parity}')
        _check_uint256('authorization chain_id', chain_id)
        _check_signature(r, s)
        self.chain_id = chain_id
        self.addr = rlp_codec.to_address(addr)
        self.nonce = nonce
        self.y_parity = y_parity
        self.r = r
        self.s = s

    @staticmethod
    def signing_payload(chain_id: int, addr, nonce: int) -> bytes:
        """
        Builds the authorization preimage `0x05 || rlp([chain_id, address, nonce])`.
        """
        return bytes([AUTHORIZATION_MAGIC]) + rlp_codec.encode([chain_id, rlp_codec.to_address(addr), nonce])

    @classmethod
    def build_and_sign(cls, chain_id: int, addr, nonce: int, signing_function) -> 'SetCodeAuthorization':
        """
        Builds the authorization preimage, hashes it and signs the digest.

        Args:
            chain_id (int): The chain ID for replay protection of the authorization.
            addr (bytes | str): The delegate contract address, or the zero address to clear delegation.
            nonce (int): The authority's nonce at the moment the authorization is processed.
                         When the authority also sends the transaction this is the transaction nonce + 1.
            signing_function (callable): Takes a digest (bytes) and returns a signed message object
                                         with `v`, `r` and `s` (e.g., `Keys.sign_hash`).

        Returns:
            SetCodeAuthorization: The signed tuple.
        """
        if not 0 <= nonce <= MAX_AUTH_NONCE:
            raise EncodingError(f'authorization nonce out of range: {nonce}')
        hashed = keccak(cls.signing_payload(chain_id, addr, nonce))
        signed_msg = signing_function(hashed)
        return cls(chain_id, addr, nonce, keys.to_y_parity(signed_msg.v), signed_msg.r, signed_msg.s)

    def digest(self) -> bytes:
        return keccak(self.signing_payload(self.chain_id, self.addr, self.nonce))

    def authority(self) -> str:
        """
        Recovers the address of the account that signed this authorization.
        """
        return keys.recover_address(self.digest(), self.y_parity, self.r, self.s)

    def encode(self) -> list:
        """
        Encodes the authorization into the six-item list carried in the transaction's authorization list.
        """
        return [self.chain_id, self.addr, self.nonce, self.y_parity, self.r, self.s]

    @classmethod
    def from_list(cls, item) -> 'SetCodeAuthorization':
        if not isinstance(item, list) or len(item) != AUTHORIZATION_FIELD_COUNT:
            raise EncodingError(f'authorization must be a list of {AUTHORIZATION_FIELD_COUNT} items')
        chain_id, addr, nonce, y_parity, r, s = item
        return cls(rlp_codec.decode_uint(chain_id), rlp_codec.decode_address(addr), rlp_codec.decode_uint(nonce),
                   rlp_codec.decode_uint(y_parity), rlp_codec.decode_uint(r), rlp_codec.decode_uint(s))


class SetCodeTx:
    """
    An unsigned EIP-7702 set-code transaction (type 0x04):

        rlp([chain_id, nonce, max_priority_fee_per_gas, max_fee_per_gas, gas_limit,
             destination, value, data, access_list, authorization_list])
    """

    def __init__(self, tx_params: BaseTxParams, acc_list: list[AccessTuple],
                 set_code_auth_list: list[SetCodeAuthorization]):
        """
        Initializes a SetCodeTx object.

        Args:
            tx_params (BaseTxParams): The base transaction parameters.
            acc_list (list[AccessTuple]): The access list for the transaction.
            set_code_auth_list (list[SetCodeAuthorization]): The signed authorizations, at least one.

        Raises:
            EncodingError: If the authorization list is empty.
        """
        if not set_code_auth_list:
            raise EncodingError('a set-code transaction needs at least one authorization')
        self.tx_params = tx_params
        self.acc_list = list(acc_list)
        self.set_code_auth_list = list(set_code_auth_list)

    @classmethod
    def build(cls, tx_params: BaseTxParams, authorization_list, access_list=()) -> 'SetCodeTx':
        """
        Assembles the transaction. Pure, performs no I/O, so an empty authorization
        list is rejected before anything reaches the node.
        """
        return cls(tx_params, list(access_list), list(authorization_list))

    def fields(self) -> list:
        """
        Returns the ten unsigned fields in wire order, ready for RLP encoding.
        """
        return self.tx_params.encode() + [
            [access.encode() for access in self.acc_list],
            [auth.encode() for auth in self.set_code_auth_list],
        ]

    def signing_payload(self) -> bytes:
        return bytes([SET_CODE_TX_TYPE]) + rlp_codec.encode(self.fields())

    def hash(self) -> bytes:
        """
        Calculates the digest the sender signs: keccak256(0x04 || rlp(unsigned fields)).

        Returns:
            bytes: The Keccak-256 hash of the transaction.
        """
        return keccak(self.signing_payload())

    def encode_with_sig(self, y_parity: int, r: int, s: int) -> bytes:
        """
        Encodes the transaction into its raw, signed form, ready for broadcasting.

        Args:
            y_parity (int): Recovery bit of the signature. 0 encodes as the empty string.
            r (int): The 'r' component of the signature, encoded as a minimal integer.
            s (int): The 's' component of the signature, encoded as a minimal integer.

        Returns:
            bytes: 0x04 || rlp(unsigned fields ++ [y_parity, r, s])
        """
        if y_parity not in (0, 1):
            raise SigningError(f'transaction y_parity must be 0 or 1, got {y_parity}')
        _check_signature(r, s)
        return bytes([SET_CODE_TX_TYPE]) + rlp_codec.encode(self.fields() + [y_parity, r, s])

    def sign_and_encode(self, signing_function) -> 'SignedSetCodeTx':
        """
        Hashes the transaction, signs the digest and returns the signed transaction.

        Args:
            signing_function (callable): Takes a digest and returns a signed message with `v`, `r`, `s`.
        """
        signed_msg = signing_function(self.hash())
        return SignedSetCodeTx(self, keys.to_y_parity(signed_msg.v), signed_msg.r, signed_msg.s)


class SignedSetCodeTx:
    """
    A signed set-code transaction. `raw` is exactly the byte sequence that is broadcast.
    """

    def __init__(self, tx: SetCodeTx, y_parity: int, r: int, s: int):
        self.tx = tx
        self.y_parity = y_parity
        self.r = r
        self.s = s
        self.raw = tx.encode_with_sig(y_parity, r, s)

    def hash(self) -> bytes:
        # the transaction hash is keccak256 over the full typed envelope
        return keccak(self.raw)

    def sender(self) -> str:
        return keys.recover_address(self.tx.hash(), self.y_parity, self.r, self.s)

    @classmethod
    def decode(cls, raw: bytes) -> 'SignedSetCodeTx':
        """
        Parses a raw signed set-code transaction back into its fields.

        Args:
            raw (bytes): 0x04 || rlp([...10 fields, y_parity, r, s])

        Returns:
            SignedSetCodeTx: The decoded transaction.

        Raises:
            EncodingError: On a wrong type byte, a wrong number of items or a non-canonical field.
        """
        if not raw or raw[0] != SET_CODE_TX_TYPE:
            raise EncodingError('not a set-code (type 0x04) transaction')
        items = rlp_codec.decode(raw[1:])
        if not isinstance(items, list) or len(items) != SIGNED_FIELD_COUNT:
            raise EncodingError(f'set-code transaction must have {SIGNED_FIELD_COUNT} items')
        (chain_id, nonce, gas_tip, gas_fee, gas, to, value, data,
         acc_list, auth_list, y_parity, r, s) = items
        if not isinstance(data, bytes):
            raise EncodingError('transaction data must be a byte string')
        if not isinstance(acc_list, list) or not isinstance(auth_list, list):
            raise EncodingError('access list and authorization list must be lists')
        tx_params = BaseTxParams(
            rlp_codec.decode_uint(chain_id), rlp_codec.decode_uint(nonce), rlp_codec.decode_uint(gas),
            gas_tip_cap=rlp_codec.decode_uint(gas_tip), gas_fee_cap=rlp_codec.decode_uint(gas_fee),
            to=rlp_codec.decode_address(to), value=rlp_codec.decode_uint(value), data=data)
        tx = SetCodeTx(tx_params, [AccessTuple.from_list(item) for item in acc_list],
                       [SetCodeAuthorization.from_list(item) for item in auth_list])
        signed = cls(tx, rlp_codec.decode_uint(y_parity), rlp_codec.decode_uint(r), rlp_codec.decode_uint(s))
        if signed.raw != bytes(raw):
            raise EncodingError('transaction is not canonically encoded')
        return signed


def _check_uint256(name: str, value: int):
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_UINT256:
        raise EncodingError(f'{name} must be an unsigned 256-bit integer, got {value!r}')


def _check_signature(r: int, s: int):
    _check_uint256('signature r', r)
    _check_uint256('signature s', s)
