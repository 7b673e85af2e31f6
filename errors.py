class SetCodeError(Exception):
    """
    Base class for every error raised while building, signing or submitting
    a set-code transaction.
    """


class EncodingError(SetCodeError, ValueError):
    """
    Invalid input to the RLP codec or to a transaction builder
    (negative integer, unsupported type, oversized field, empty authorization list, ...).
    Always a caller error.
    """


class SigningError(SetCodeError):
    """
    The signer failed, usually because of bad key material.
    """


class RpcError(SetCodeError):
    """
    The node rejected a call (bad nonce, insufficient balance, malformed transaction)
    or could not be reached.
    """

    def __init__(self, method: str, message: str):
        """
        Args:
            method (str): The JSON-RPC method that failed (e.g. 'eth_sendRawTransaction').
            message (str): The message returned by the node or the transport.
        """
        super().__init__(f'{method} failed: {message}')
        self.method = method
        self.message = message


class InclusionCancelled(SetCodeError):
    """
    Receipt polling was stopped by the caller's cancel event or by its deadline
    before a receipt was found.
    """


class ConfigurationError(SetCodeError):
    """
    A required setting is missing or has an invalid value.
    """
