"""
solar-deployments: Python library for deploying smart contracts and tracking their addresses
"""

from importlib.metadata import PackageNotFoundError, version

from .artifacts import load_compiled_contract
from .config import RPCTarget, SolarConfig
from .deployer import Deployer, create_deployer
from .deployments import DeploymentManager, DeploymentState
from .events import Event, EventChannel, EventKind
from .exceptions import (
    AlreadyExistsError,
    ArtifactError,
    ConfigError,
    ConfirmationTimeoutError,
    ConstructorParamsError,
    DeploymentOptionsError,
    ExpansionError,
    ProtocolError,
    RepositoryFileError,
    RPCError,
    SolarError,
    UnknownReferenceError,
)
from .expansion import expand
from .repository import AddressBook
from .types import (
    CompiledContract,
    ContractCreation,
    DeployedContract,
    DeploymentOptions,
    DeploymentStatus,
    Platform,
)

try:
    __version__ = version("solar-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "AddressBook",
    "CompiledContract",
    "ContractCreation",
    "DeployedContract",
    "Deployer",
    "DeploymentManager",
    "DeploymentOptions",
    "DeploymentState",
    "DeploymentStatus",
    "Event",
    "EventChannel",
    "EventKind",
    "Platform",
    "RPCTarget",
    "SolarConfig",
    "create_deployer",
    "expand",
    "load_compiled_contract",
    "SolarError",
    "ConfigError",
    "RepositoryFileError",
    "AlreadyExistsError",
    "ExpansionError",
    "UnknownReferenceError",
    "RPCError",
    "ConfirmationTimeoutError",
    "ProtocolError",
    "ConstructorParamsError",
    "DeploymentOptionsError",
    "ArtifactError",
]
