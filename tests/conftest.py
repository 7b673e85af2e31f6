import pytest

from ec import FeeData
from keys import Keys

# first well-known development account (hardhat / anvil)
PRIVATE_KEY = '0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80'
ADDRESS = '0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266'
DELEGATE = '0xf19588Ce7eF802F26bf7a7d9d96444dD4Ed8DA59'
SEPOLIA = 11155111


class FakeNode:
    """
    Stands in for `ec.Client`: canned answers and a log of every call.
    """

    def __init__(self, keys, nonce=5, chain_id=SEPOLIA, fee_data=None, receipts=(), send_error=None, code=b''):
        self.keys = keys
        self.nonce = nonce
        self.chain_id = chain_id
        self.fee_data = fee_data or FeeData(0, 2_000_000_000)
        self.receipts = list(receipts)
        self.send_error = send_error
        self.code = code
        self.calls = []
        self.sent = []

    def get_transaction_count(self, address=None):
        self.calls.append('get_transaction_count')
        return self.nonce

    def get_chain_id(self):
        self.calls.append('get_chain_id')
        return self.chain_id

    def get_fee_data(self):
        self.calls.append('get_fee_data')
        return self.fee_data

    def get_code(self, address=None):
        self.calls.append('get_code')
        return self.code

    def send_raw_transaction(self, raw):
        self.calls.append('send_raw_transaction')
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(raw)
        return b'\x11' * 32

    def get_transaction_receipt(self, tx_hash):
        self.calls.append('get_transaction_receipt')
        return self.receipts.pop(0) if self.receipts else None


@pytest.fixture
def keys():
    return Keys(ADDRESS, PRIVATE_KEY)


@pytest.fixture
def node(keys):
    return FakeNode(keys, receipts=[None, {'status': 1, 'blockNumber': 42}])
