import json

from eth_account import Account
from eth_keys import keys as eth_keys
from eth_keys.exceptions import BadSignature, ValidationError
from web3 import Web3

from errors import SigningError

# --- Module-level Constants ---
V_OFFSET = 27  # Offset of the legacy 'v' value (27/28) from the raw recovery id (0/1).


class Keys:
    """
    A utility class to manage an Ethereum account address and its private key.
    It also acts as the signer of authorization and transaction digests.
    """

    def __init__(self, addr, priv_key):
        """
        Initializes a Keys object with an Ethereum address and its corresponding private key.

        Args:
            addr (str): The Ethereum address (e.g., '0x...').
            priv_key (str): The hexadecimal private key string (e.g., '0x...').
        """
        # Checksummed addresses are the canonical textual form.
        self.address = Web3.to_checksum_address(addr)
        self.priv_key = priv_key if priv_key.startswith('0x') else '0x' + priv_key
        try:
            self.priv_key_bytes = bytes.fromhex(self.priv_key[2:])
        except ValueError as e:
            raise SigningError('private key is not a hex string') from e

    def __repr__(self):
        # never print the key itself
        return f'Keys(address={self.address!r})'

    @property
    def address_bytes(self) -> bytes:
        return bytes.fromhex(self.address[2:])

    def sign_hash(self, hashed: bytes):
        """
        Signs a 32-byte digest with the private key. No prefix is applied to the digest,
        which is what both the EIP-7702 authorization and the transaction signature need.

        Args:
            hashed (bytes): The digest to sign.

        Returns:
            eth_account.datastructures.SignedMessage: An object with the `v`, `r` and `s`
                                                      components of the signature.

        Raises:
            SigningError: If the key material is unusable or the digest is malformed.
        """
        try:
            return Account.unsafe_sign_hash(hashed, self.priv_key)
        except (ValueError, TypeError, ValidationError) as e:
            raise SigningError(f'could not sign digest for {self.address}: {e}') from e

    @staticmethod
    def from_geth_file(file_name: str, pswd: str = '') -> callable:
        """
        A static factory method to create a callable that, when executed with a Web3 instance,
        will load keys from a Geth-style keystore file.

        Returning a callable defers the decryption until a client is created.

        Args:
            file_name (str): The full path to the Geth keystore file.
            pswd (str, optional): The password for the keystore file. Defaults to an empty string.

        Returns:
            callable: A function that takes a Web3 instance (`w3`) and returns a `Keys` object.
        """
        return lambda w3: Keys.__get_keys_from_file(
            w3.eth.account.decrypt if w3 is not None else Account.decrypt, file_name, pswd)

    @staticmethod
    def from_address_and_private_key(address: str, priv_key: str) -> callable:
        """
        A static factory method to create a callable that directly provides keys
        from a given address and private key strings.

        Args:
            address (str): The Ethereum address string.
            priv_key (str): The private key string.

        Returns:
            callable: A function that ignores its argument and returns a `Keys` object.
        """
        return lambda _: Keys(address, priv_key)

    @staticmethod
    def from_private_key(priv_key: str) -> callable:
        """
        Same as `from_address_and_private_key`, but the address is derived from the key.
        """
        def supplier(_):
            try:
                account = Account.from_key(priv_key)
            except (ValueError, TypeError, ValidationError) as e:
                raise SigningError(f'invalid private key: {e}') from e
            return Keys(account.address, account.key.hex())

        return supplier

    @staticmethod
    def __get_keys_from_file(decrypt, file_name: str, pswd: str = '') -> 'Keys':
        """
        Decrypts a Geth keystore file and builds the `Keys` object.

        Args:
            decrypt (callable): A decryption function (e.g., `w3.eth.account.decrypt`).
            file_name (str): The path to the keystore file.
            pswd (str, optional): The password for the keystore file. Defaults to an empty string.

        Returns:
            Keys: A `Keys` object containing the loaded address and private key.
        """
        with open(file_name) as keyfile:
            encrypted_key = json.load(keyfile)
        # Geth keystore filenames end with the address, the JSON body carries it too.
        addr = encrypted_key.get('address', file_name[-40:])
        try:
            private_key = decrypt(encrypted_key, pswd)
        except ValueError as e:
            raise SigningError(f'could not decrypt keystore {file_name}: {e}') from e
        return Keys('0x' + addr.removeprefix('0x'), '0x' + bytes.hex(private_key))


def to_y_parity(v: int) -> int:
    """
    Normalizes the 'v' component of a signature to the y-parity bit used by typed transactions.

    Signers return either the raw recovery id (0 or 1) or the legacy form (27 or 28).
    EIP-7702 authorizations and type 0x04 transactions carry only the parity bit.

    Args:
        v (int): The 'v' value returned by the signer.

    Returns:
        int: 0 or 1.
    """
    if v in (0, 1):
        return v
    if v in (V_OFFSET, V_OFFSET + 1):
        return v - V_OFFSET
    raise SigningError(f'unexpected signature v value {v}')


def recover_address(hashed: bytes, y_parity: int, r: int, s: int) -> str:
    """
    Recovers the checksummed address that produced a signature over `hashed`.
    """
    try:
        signature = eth_keys.Signature(vrs=(y_parity, r, s))
        public_key = signature.recover_public_key_from_msg_hash(hashed)
    except (BadSignature, ValidationError) as e:
        raise SigningError(f'cannot recover signer: {e}') from e
    return public_key.to_checksum_address()
