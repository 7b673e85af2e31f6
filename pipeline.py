"""
The build -> sign -> submit -> poll flow for EIP-7702 set-code transactions.

The sender is also the authority: it signs an authorization delegating its own code and
then sends a transaction to itself carrying that authorization. The account nonce is read
once; the transaction uses it and the authorization uses it + 1, because the nonce is
incremented by the transaction before the authorization list is processed. Another
transaction from the same account between the read and the inclusion invalidates both,
so callers must not prepare two transactions for one account concurrently.
"""
import logging

import abi
from ec import FeeData
from errors import EncodingError
from model import ZERO_ADDRESS, BaseTxParams, SetCodeAuthorization, SetCodeTx, SignedSetCodeTx

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 1_000_000


def prepare_set_code_tx(client, keys, delegate, data: bytes = b'', value: int = 0,
                        gas_limit: int = DEFAULT_GAS_LIMIT, chain_id: int = None, access_list=(),
                        fee_data: FeeData = None) -> SignedSetCodeTx:
    """
    Reads the nonce (and chain id and fees when not supplied), signs the authorization and
    the transaction.

    Args:
        client (ec.Client): The node client.
        keys (keys.Keys): The sender and authority.
        delegate (bytes | str): The contract to delegate to, or the zero address to clear delegation.
        data (bytes): Call data executed against the (now delegated) sender.
        value (int): Wei sent along with the call.
        gas_limit (int): Gas limit of the transaction.
        chain_id (int, optional): Skips the eth_chainId call when set.
        access_list (list[model.AccessTuple]): Optional EIP-2930 access list.
        fee_data (ec.FeeData, optional): Skips the fee query when set.

    Returns:
        model.SignedSetCodeTx: The signed transaction, not yet sent.
    """
    nonce = client.get_transaction_count(keys.address)
    if chain_id is None:
        chain_id = client.get_chain_id()
    if fee_data is None:
        fee_data = client.get_fee_data()

    authorization = SetCodeAuthorization.build_and_sign(chain_id, delegate, nonce + 1, keys.sign_hash)
    logger.debug('authorization for %s at nonce %d signed', keys.address, authorization.nonce)

    tx_params = BaseTxParams(chain_id, nonce=nonce, gas=gas_limit,
                             gas_tip_cap=fee_data.max_priority_fee_per_gas,
                             gas_fee_cap=fee_data.max_fee_per_gas,
                             to=keys.address_bytes, value=value, data=data)
    tx = SetCodeTx.build(tx_params, [authorization], access_list)
    signed = tx.sign_and_encode(keys.sign_hash)
    logger.info('prepared set-code tx 0x%s (chain %d, nonce %d)', signed.hash().hex(), chain_id, nonce)
    return signed


def send_set_code_tx(client, submitter, keys, delegate, cancel=None, timeout=None, **kwargs):
    """
    Prepares, submits and waits for a set-code transaction.

    Extra keyword arguments go to `prepare_set_code_tx`. `cancel` and `timeout` bound the
    receipt polling; without them it waits until the transaction is mined.

    Returns:
        The transaction receipt.
    """
    signed = prepare_set_code_tx(client, keys, delegate, **kwargs)
    tx_hash = submitter.submit(signed.raw)
    return submitter.await_inclusion(tx_hash, cancel=cancel, timeout=timeout)


def execute_batch(client, submitter, keys, delegate, calls, **kwargs):
    """
    Delegates the sender's code to a batch call contract and runs `calls` through its
    `execute` function in the same transaction.
    """
    if not calls:
        raise EncodingError('execute_batch needs at least one call')
    data = abi.encode_batch_execute(calls)
    return send_set_code_tx(client, submitter, keys, delegate, data=data, **kwargs)


def remove_account_code(client, submitter, keys, **kwargs):
    """
    Clears the sender's delegation by authorizing the zero address.
    The account code is logged before and after.
    """
    logger.info('removing account code for %s', keys.address)
    logger.info('account code: 0x%s', client.get_code(keys.address).hex())
    receipt = send_set_code_tx(client, submitter, keys, ZERO_ADDRESS, **kwargs)
    logger.info("EOA account's code: 0x%s", client.get_code(keys.address).hex())
    return receipt
