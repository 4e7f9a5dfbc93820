"""Resilient access to the ledger node."""

from dexroute.chain.cache import TTLCache
from dexroute.chain.client import ChainClient
from dexroute.chain.messages import ErrorCategory, classify_error, translate_error
from dexroute.chain.reader import PoolReader
from dexroute.chain.result import Err, ErrorKind, Ok, Result
from dexroute.chain.throttle import AdaptiveThrottle
from dexroute.chain.transport import Endpoint, JsonRpcTransport, RpcTransport, classify_exception

__all__ = [
    "AdaptiveThrottle",
    "ChainClient",
    "Endpoint",
    "Err",
    "ErrorCategory",
    "ErrorKind",
    "JsonRpcTransport",
    "Ok",
    "PoolReader",
    "Result",
    "RpcTransport",
    "TTLCache",
    "classify_error",
    "classify_exception",
    "translate_error",
]
