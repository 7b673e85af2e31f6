import threading

import pytest

from conftest import FakeNode
from errors import InclusionCancelled, RpcError
from submitter import Submitter, poll_until


def test_returns_third_receipt_without_a_fourth_query(keys):
    receipt = {'status': 1}
    node = FakeNode(keys, receipts=[None, None, receipt, {'status': 0}])
    assert Submitter(node, poll_interval=0).await_inclusion(b'\x11' * 32) is receipt
    assert node.calls.count('get_transaction_receipt') == 3


def test_submit_returns_node_hash(node):
    assert Submitter(node).submit(b'\x04\xc0') == b'\x11' * 32
    assert node.sent == [b'\x04\xc0']


def test_rejection_is_surfaced_and_not_retried(keys):
    node = FakeNode(keys, send_error=RpcError('eth_sendRawTransaction', 'nonce too low'))
    with pytest.raises(RpcError, match='nonce too low'):
        Submitter(node).submit(b'\x04\xc0')
    assert node.calls == ['send_raw_transaction']


def test_cancelled_before_first_poll(node):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(InclusionCancelled):
        Submitter(node, poll_interval=0).await_inclusion(b'\x11' * 32, cancel=cancel)
    assert 'get_transaction_receipt' not in node.calls


def test_cancel_interrupts_the_wait(keys):
    node = FakeNode(keys)
    cancel = threading.Event()
    timer = threading.Timer(0.05, cancel.set)
    timer.start()
    try:
        with pytest.raises(InclusionCancelled):
            Submitter(node, poll_interval=30).await_inclusion(b'\x11' * 32, cancel=cancel)
    finally:
        timer.cancel()
    assert node.calls.count('get_transaction_receipt') == 1


def test_timeout(keys):
    node = FakeNode(keys)
    with pytest.raises(InclusionCancelled):
        Submitter(node).await_inclusion(b'\x11' * 32, poll_interval=0.01, timeout=0.05)
    assert node.calls.count('get_transaction_receipt') >= 2


def test_poll_until_returns_first_value():
    answers = iter([None, 0, 1])
    assert poll_until(lambda: next(answers), 0) == 0


def test_submit_and_wait(node):
    receipt = Submitter(node, poll_interval=0).submit_and_wait(b'\x04\xc0')
    assert receipt['blockNumber'] == 42
    assert node.calls == ['send_raw_transaction', 'get_transaction_receipt', 'get_transaction_receipt']
