from pumptrade.exceptions import (
    AccountNotFound,
    ConfirmationTimedOut,
    CurveAlreadyComplete,
    PumpTradeError,
    RpcError,
    SubmissionFailed,
    TokenProgramDetectionFailed,
    TransactionExpired,
    TransactionRejected,
)
from pumptrade.models import (
    PriceQuote,
    PriorityOptions,
    SlippageOptions,
    TokenProgram,
    TradeEvent,
    TradeMode,
    TradeOptions,
    TradeOutcome,
)
from pumptrade.rpc import SolanaRpcClient
from pumptrade.trader import PumpTrader
from pumptrade.wallet import SolanaWallet

__all__ = [
    "PumpTrader",
    "SolanaRpcClient",
    "SolanaWallet",
    "TradeOptions",
    "SlippageOptions",
    "PriorityOptions",
    "TradeOutcome",
    "TradeEvent",
    "TradeMode",
    "TokenProgram",
    "PriceQuote",
    "PumpTradeError",
    "RpcError",
    "AccountNotFound",
    "TokenProgramDetectionFailed",
    "CurveAlreadyComplete",
    "SubmissionFailed",
    "TransactionRejected",
    "TransactionExpired",
    "ConfirmationTimedOut",
]
