import logging

import ec
import pipeline
import submitter
from settings import Settings

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s %(message)s')

# --- Configuration Section ---
settings = Settings.from_env()

# --- Key and Client Initialization ---
client = ec.Client(settings.rpc_url, settings.keys_supplier())
sender = submitter.Submitter(client, poll_interval=settings.poll_interval)

# --- Delegation Removal ---
receipt = pipeline.remove_account_code(client, sender, client.keys,
                                       gas_limit=settings.gas_limit, chain_id=settings.chain_id)
# Authorizing the zero address clears the delegation designator, the account becomes a plain EOA again.

print(f"status {receipt['status']} in block {receipt['blockNumber']}")
