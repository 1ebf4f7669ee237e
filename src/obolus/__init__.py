__version__ = "0.3.0"

__all__ = [
    # Errors
    "ObolusError",
    "UserRejected",
    "NoProviderFound",
    "AddressNotFound",
    "NetworkUnavailable",
    "RpcError",
    "ContractRevert",
    "ValidationError",
    "NotConnected",
    "OperationPending",
    "SessionExpired",
    # Configuration
    "Settings",
    # Chain
    "RpcClient",
    "MethodTable",
    "ContractBinding",
    "Submission",
    "bind",
    "resolve_interface",
    "ArtifactSource",
    "ExplorerSource",
    "StaticSource",
    "ERC20_ABI",
    # Wallet
    "WalletSession",
    "LocalKeyProvider",
    "discover_provider",
    # Controller
    "InteractionController",
    "OperationResult",
    "Status",
    # Amounts
    "split_u256",
    "join_u256",
    "parse_units",
    "format_units",
]

from .chain import (
    ERC20_ABI,
    ArtifactSource,
    ContractBinding,
    ExplorerSource,
    MethodTable,
    RpcClient,
    StaticSource,
    Submission,
    bind,
    resolve_interface,
)
from .config import Settings
from .controller import InteractionController, OperationResult, Status
from .errors import (
    AddressNotFound,
    ContractRevert,
    NetworkUnavailable,
    NoProviderFound,
    NotConnected,
    ObolusError,
    OperationPending,
    RpcError,
    SessionExpired,
    UserRejected,
    ValidationError,
)
from .utils import format_units, join_u256, parse_units, split_u256
from .wallet import LocalKeyProvider, WalletSession, discover_provider
