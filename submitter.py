import logging
import threading
import time
from typing import Callable, Optional

from errors import InclusionCancelled

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 15.0  # seconds


def poll_until(fetch: Callable, interval: float, cancel: Optional[threading.Event] = None,
               timeout: Optional[float] = None):
    """
    Calls `fetch` until it returns something other than None, waiting `interval` seconds
    between attempts.

    Args:
        fetch (callable): A zero-argument function; None means "not yet".
        interval (float): Seconds to wait between two calls.
        cancel (threading.Event, optional): Setting this event stops the loop.
        timeout (float, optional): Overall deadline in seconds. None waits forever.

    Returns:
        The first non-None value returned by `fetch`.

    Raises:
        InclusionCancelled: If `cancel` is set or the deadline passes before a value is found.
    """
    cancel = cancel or threading.Event()
    deadline = None if timeout is None else time.monotonic() + timeout
    attempt = 0
    while True:
        if cancel.is_set():
            raise InclusionCancelled(f'polling cancelled after {attempt} attempts')
        attempt += 1
        result = fetch()
        if result is not None:
            return result
        wait = interval
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise InclusionCancelled(f'no result within {timeout}s ({attempt} attempts)')
            wait = min(wait, remaining)
        # Event.wait returns True as soon as the event is set
        if cancel.wait(wait):
            raise InclusionCancelled(f'polling cancelled after {attempt} attempts')


class Submitter:
    """
    Sends raw set-code transactions and waits for them to be mined.

    `node` is anything with `send_raw_transaction(raw)` and `get_transaction_receipt(hash)`,
    normally an `ec.Client`.
    """

    def __init__(self, node, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self.node = node
        self.poll_interval = poll_interval

    def submit(self, raw_tx: bytes):
        """
        Broadcasts the raw transaction once. An `RpcError` from the node is not retried:
        resending the same bytes would fail for the same reason.

        Returns:
            The transaction hash.
        """
        tx_hash = self.node.send_raw_transaction(raw_tx)
        logger.info('tx sent: %s', _to_hex(tx_hash))
        return tx_hash

    def await_inclusion(self, tx_hash, poll_interval: Optional[float] = None,
                        cancel: Optional[threading.Event] = None, timeout: Optional[float] = None):
        """
        Polls for the receipt of `tx_hash` until the node returns one.

        A missing receipt is the normal "not yet included" state. Without `cancel` or
        `timeout` the wait is unbounded.

        Args:
            tx_hash: The hash returned by `submit`.
            poll_interval (float, optional): Seconds between polls. Defaults to the submitter's interval.
            cancel (threading.Event, optional): Set it to stop waiting.
            timeout (float, optional): Give up after this many seconds.

        Returns:
            The receipt.
        """
        interval = self.poll_interval if poll_interval is None else poll_interval
        logger.info('waiting for %s to be mined', _to_hex(tx_hash))
        receipt = poll_until(lambda: self.node.get_transaction_receipt(tx_hash), interval, cancel, timeout)
        logger.info('tx is mined: %s', _to_hex(tx_hash))
        return receipt

    def submit_and_wait(self, raw_tx: bytes, **kwargs):
        return self.await_inclusion(self.submit(raw_tx), **kwargs)


def _to_hex(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        return '0x' + bytes(value).hex()
    return str(value)
