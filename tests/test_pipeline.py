import pytest

import abi
import pipeline
import rlp_codec
from conftest import ADDRESS, DELEGATE, SEPOLIA, FakeNode
from ec import FeeData
from errors import EncodingError, RpcError
from model import SetCodeAuthorization, SignedSetCodeTx, Call
from submitter import Submitter


def test_sepolia_scenario(node, keys):
    signed = pipeline.prepare_set_code_tx(node, keys, DELEGATE)
    assert node.calls == ['get_transaction_count', 'get_chain_id', 'get_fee_data']

    decoded = SignedSetCodeTx.decode(signed.raw)
    auth = decoded.tx.set_code_auth_list[0]
    assert decoded.tx.tx_params.nonce == 5
    assert auth.nonce == 6
    assert auth.chain_id == SEPOLIA
    assert auth.addr == rlp_codec.to_address(DELEGATE)
    assert auth.authority() == ADDRESS
    assert SetCodeAuthorization.signing_payload(auth.chain_id, auth.addr, auth.nonce)[0] == 0x05

    assert signed.raw[0] == 0x04
    items = rlp_codec.decode(signed.raw[1:])
    assert len(items) == 13
    assert items[5] == rlp_codec.to_address(ADDRESS)
    # zero priority fee from the node
    assert items[2] == b''
    assert signed.sender() == ADDRESS


def test_configured_chain_and_fees_skip_queries(node, keys):
    signed = pipeline.prepare_set_code_tx(node, keys, DELEGATE, chain_id=1, fee_data=FeeData(1, 2),
                                          gas_limit=50_000)
    assert node.calls == ['get_transaction_count']
    params = SignedSetCodeTx.decode(signed.raw).tx.tx_params
    assert (params.chain_id, params.gas_tip, params.gas_fee, params.gas) == (1, 1, 2, 50_000)


def test_send_set_code_tx(node, keys):
    receipt = pipeline.send_set_code_tx(node, Submitter(node, poll_interval=0), keys, DELEGATE)
    assert receipt == {'status': 1, 'blockNumber': 42}
    assert len(node.sent) == 1
    assert node.sent[0][0] == 0x04


def test_rejected_transaction_aborts_before_polling(keys):
    node = FakeNode(keys, send_error=RpcError('eth_sendRawTransaction', 'insufficient funds'))
    with pytest.raises(RpcError):
        pipeline.send_set_code_tx(node, Submitter(node, poll_interval=0), keys, DELEGATE)
    assert 'get_transaction_receipt' not in node.calls


def test_execute_batch_encodes_calls(node, keys):
    calls = [Call(DELEGATE, 10 ** 15)]
    pipeline.execute_batch(node, Submitter(node, poll_interval=0), keys, DELEGATE, calls)
    decoded = SignedSetCodeTx.decode(node.sent[0])
    assert decoded.tx.tx_params.data == abi.encode_batch_execute(calls)


def test_execute_batch_needs_calls(node, keys):
    with pytest.raises(EncodingError):
        pipeline.execute_batch(node, Submitter(node), keys, DELEGATE, [])
    assert node.calls == []


def test_remove_account_code(node, keys):
    pipeline.remove_account_code(node, Submitter(node, poll_interval=0), keys)
    assert node.calls.count('get_code') == 2
    auth = SignedSetCodeTx.decode(node.sent[0]).tx.set_code_auth_list[0]
    assert auth.addr == bytes(20)
    assert auth.nonce == 6
