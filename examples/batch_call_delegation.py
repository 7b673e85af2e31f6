import logging

import ec
import model
import pipeline
import submitter
from settings import Settings

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s %(message)s')

# --- Configuration Section ---
settings = Settings.from_env()  # RPC_URL, PRIVATE_KEY / KEYSTORE_FILE, DELEGATE_ADDRESS, ... from the environment or .env
if not settings.delegate_address or not settings.recipient:
    raise SystemExit('DELEGATE_ADDRESS and RECIPIENT must be set')

# --- Key and Client Initialization ---
client = ec.Client(settings.rpc_url, settings.keys_supplier())
# The client signs with the configured key and talks to the node for nonce, fees and submission.

sender = submitter.Submitter(client, poll_interval=settings.poll_interval)

# --- Batch Preparation ---
calls = [model.Call(to=settings.recipient, value=settings.transfer_value, data=b'')]
# One plain Ether transfer executed by the delegate contract on behalf of the account.
# More calls can be appended; they run in order inside a single transaction.

# --- Delegation, Signing, Sending and Waiting ---
receipt = pipeline.execute_batch(client, sender, client.keys, settings.delegate_address, calls,
                                 gas_limit=settings.gas_limit, chain_id=settings.chain_id)
# Signs an authorization for nonce + 1 delegating the account to DELEGATE_ADDRESS, wraps it into
# a type 0x04 transaction sent to the account itself with the encoded `execute(calls)` as data,
# then polls for the receipt every POLL_INTERVAL seconds.

print(f"status {receipt['status']} in block {receipt['blockNumber']}")
