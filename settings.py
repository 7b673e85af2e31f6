import os
from typing import Optional

from dotenv import load_dotenv

from errors import ConfigurationError
from keys import Keys
from pipeline import DEFAULT_GAS_LIMIT
from submitter import DEFAULT_POLL_INTERVAL


class Settings:
    """
    Runtime configuration of the example scripts, read from the environment
    (and from a `.env` file when present).

    Variables:
        RPC_URL            node endpoint (required)
        PRIVATE_KEY        hex private key of the sender, or
        KEYSTORE_FILE      Geth keystore file of the sender, with KEYSTORE_PASSWORD
        CHAIN_ID           optional, queried from the node when unset
        GAS_LIMIT          gas limit of the set-code transaction
        POLL_INTERVAL      seconds between receipt polls
        DELEGATE_ADDRESS   contract the account delegates to
        RECIPIENT          receiver of the sample batch transfer
        TRANSFER_VALUE     wei sent to RECIPIENT
    """

    def __init__(self, rpc_url: str, private_key: Optional[str] = None, keystore_file: Optional[str] = None,
                 keystore_password: str = '', chain_id: Optional[int] = None,
                 gas_limit: int = DEFAULT_GAS_LIMIT, poll_interval: float = DEFAULT_POLL_INTERVAL,
                 delegate_address: Optional[str] = None, recipient: Optional[str] = None,
                 transfer_value: int = 0):
        if not rpc_url:
            raise ConfigurationError('RPC_URL is not set')
        if not private_key and not keystore_file:
            raise ConfigurationError('either PRIVATE_KEY or KEYSTORE_FILE must be set')
        self.rpc_url = rpc_url
        self.private_key = private_key
        self.keystore_file = keystore_file
        self.keystore_password = keystore_password
        self.chain_id = chain_id
        self.gas_limit = gas_limit
        self.poll_interval = poll_interval
        self.delegate_address = delegate_address
        self.recipient = recipient
        self.transfer_value = transfer_value

    def __repr__(self):
        return f'Settings(rpc_url={self.rpc_url!r}, chain_id={self.chain_id}, gas_limit={self.gas_limit})'

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, environ=None) -> 'Settings':
        """
        Loads the settings.

        Args:
            env_file (str, optional): A dotenv file to load first. Defaults to `.env` searched from the
                                      working directory. Variables already in the environment win.
            environ (mapping, optional): The variables to read. Defaults to `os.environ`.
        """
        if environ is None:
            load_dotenv(env_file)
            environ = os.environ
        return cls(
            rpc_url=environ.get('RPC_URL', ''),
            private_key=environ.get('PRIVATE_KEY') or None,
            keystore_file=environ.get('KEYSTORE_FILE') or None,
            keystore_password=environ.get('KEYSTORE_PASSWORD', ''),
            chain_id=_parse(environ, 'CHAIN_ID', _to_int, None),
            gas_limit=_parse(environ, 'GAS_LIMIT', _to_int, DEFAULT_GAS_LIMIT),
            poll_interval=_parse(environ, 'POLL_INTERVAL', float, DEFAULT_POLL_INTERVAL),
            delegate_address=environ.get('DELEGATE_ADDRESS') or None,
            recipient=environ.get('RECIPIENT') or None,
            transfer_value=_parse(environ, 'TRANSFER_VALUE', _to_int, 0),
        )

    def keys_supplier(self):
        """
        Returns the `Keys` factory matching the configured key source.
        """
        if self.private_key:
            return Keys.from_private_key(self.private_key)
        return Keys.from_geth_file(self.keystore_file, self.keystore_password)


def _to_int(value: str) -> int:
    # accepts decimal and 0x-prefixed hex, e.g. CHAIN_ID=0x01a5ee289c
    return int(value, 0)


def _parse(environ, name, convert, default):
    value = environ.get(name)
    if value is None or value == '':
        return default
    try:
        result = convert(value)
    except ValueError as e:
        raise ConfigurationError(f'{name}={value!r} is not a valid number') from e
    if result < 0:
        raise ConfigurationError(f'{name} must not be negative')
    return result
