import logging
from typing import Optional, Union

from eth_typing import HexStr
from hexbytes import HexBytes
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import TransactionNotFound, Web3Exception

from errors import RpcError

logger = logging.getLogger(__name__)


class FeeData:
    """
    EIP-1559 fee values for a new transaction, in Wei per gas unit.
    """

    def __init__(self, max_priority_fee_per_gas: int, max_fee_per_gas: int):
        self.max_priority_fee_per_gas = max_priority_fee_per_gas
        self.max_fee_per_gas = max_fee_per_gas

    def __repr__(self):
        return f'FeeData(max_priority_fee_per_gas={self.max_priority_fee_per_gas}, ' \
               f'max_fee_per_gas={self.max_fee_per_gas})'


class Client:
    """
    A client class for interacting with an Ethereum node over JSON-RPC.
    It wraps the Web3.py calls the set-code flow needs and turns node rejections into `RpcError`.
    """

    def __init__(self, url: str, keys_supplier, w3: Optional[Web3] = None, verbose=True):
        """
        Initializes the Ethereum client.

        Args:
            url (str): The URL of the Ethereum node (e.g., 'http://localhost:8545').
            keys_supplier: A callable that takes a Web3 instance and returns a `keys.Keys` object.
                           This allows flexible key loading (keystore file, environment variable).
            w3 (Web3, optional): An existing Web3 instance. When given, `url` is not used.
            verbose (bool): If True, raw transactions and receipts are logged at INFO level.
        """
        self.w3 = w3 if w3 is not None else Web3(Web3.HTTPProvider(url))
        self.keys = keys_supplier(self.w3)
        self.verbose = verbose

    def __rpc(self, method: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (Web3Exception, RequestException, ValueError) as e:
            raise RpcError(method, _node_message(e)) from e

    def get_transaction_count(self, address: Optional[str] = None) -> int:
        """
        Retrieves the account nonce. The 'pending' block identifier counts transactions
        that are already in the mempool but not yet mined.

        Args:
            address (str, optional): The account to query. Defaults to the client's own address.

        Returns:
            int: The nonce of the next transaction from that account.
        """
        return self.__rpc('eth_getTransactionCount', self.w3.eth.get_transaction_count,
                          address or self.keys.address, block_identifier='pending')

    def get_chain_id(self) -> int:
        return self.__rpc('eth_chainId', lambda: self.w3.eth.chain_id)

    def get_base_fee(self) -> int:
        """
        Retrieves the current base fee per gas from the latest block.

        Returns:
            int: The base fee per gas in Wei.
        """
        block = self.__rpc('eth_getBlockByNumber', self.w3.eth.get_block, 'latest')
        try:
            return block['baseFeePerGas']
        except KeyError:
            # pre-London chains have no base fee
            raise RpcError('eth_getBlockByNumber', 'latest block has no baseFeePerGas') from None

    def get_fee_data(self) -> FeeData:
        """
        Suggests fee caps for a new transaction the way ethers' `getFeeData` does:
        the priority fee comes from `eth_maxPriorityFeePerGas` and the fee cap is
        twice the latest base fee plus that priority fee.

        Returns:
            FeeData: The priority fee (may be 0 on some networks) and the fee cap.
        """
        base_fee = self.get_base_fee()
        priority_fee = self.__rpc('eth_maxPriorityFeePerGas', lambda: self.w3.eth.max_priority_fee)
        return FeeData(priority_fee, 2 * base_fee + priority_fee)

    def get_code(self, address: Optional[str] = None) -> bytes:
        """
        Returns the code at `address` (the client's own address by default).
        A delegated account returns the delegation designator 0xef0100 || delegate address.
        """
        return bytes(self.__rpc('eth_getCode', self.w3.eth.get_code, address or self.keys.address))

    def send_raw_transaction(self, raw_transaction: Union[HexStr, bytes]) -> HexBytes:
        """
        Sends a signed raw transaction to the node. It is sent once and never retried.

        Args:
            raw_transaction (Union[HexStr, bytes]): The typed, signed transaction.

        Returns:
            HexBytes: The transaction hash reported by the node.

        Raises:
            RpcError: If the node rejects the transaction (nonce, balance, malformed authorization...).
        """
        raw_hex = Web3.to_hex(raw_transaction) if isinstance(raw_transaction, bytes) else raw_transaction
        if self.verbose:
            logger.info('sending raw transaction %s', raw_hex)
        tx_hash = self.__rpc('eth_sendRawTransaction', self.w3.eth.send_raw_transaction, raw_hex)
        return HexBytes(tx_hash)

    def get_transaction_receipt(self, tx_hash):
        """
        Fetches the receipt of a transaction.

        Args:
            tx_hash (Union[HexStr, bytes]): The transaction hash.

        Returns:
            web3.types.TxReceipt | None: The receipt, or None if the transaction is not mined yet.
        """
        try:
            receipt = self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except (Web3Exception, RequestException, ValueError) as e:
            raise RpcError('eth_getTransactionReceipt', _node_message(e)) from e
        if receipt is not None and self.verbose:
            logger.info('receipt: %s', receipt)
        return receipt

    def sign_hash(self, hashed):
        """
        Signs a digest with the client's private key, without any message prefix.

        Returns:
            eth_account.datastructures.SignedMessage: The `v`, `r` and `s` of the signature.
        """
        return self.keys.sign_hash(hashed)

    def get_address_bytes(self):
        """
        Gets the client's Ethereum address as 20 raw bytes.
        """
        return self.keys.address_bytes


def _node_message(error: Exception) -> str:
    # web3 v6 raised ValueError({'code': ..., 'message': ...}) for JSON-RPC errors
    if error.args and isinstance(error.args[0], dict):
        return error.args[0].get('message', str(error.args[0]))
    return str(error)
