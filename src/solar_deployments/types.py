"""Data types and dataclasses for solar-deployments library."""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple

from eth_utils import add_0x_prefix, is_hex, remove_0x_prefix

from .constants import DEFAULT_GAS_LIMIT
from .exceptions import UnknownReferenceError

ADDRESS_SIZE = 20


class DeploymentStatus(Enum):
    """
    Confirmation status of a deployed contract.

    Value strings are what the repository file stores.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not DeploymentStatus.PENDING


class Platform(Enum):
    """RPC backend families."""

    SBIT = "sbit"  # UTXO chain
    ETHEREUM = "eth"  # account chain


def normalize_address(address: str) -> str:
    """Lowercase hex without 0x prefix, the in-memory form of every address."""
    if not isinstance(address, str) or not remove_0x_prefix(address) or not is_hex(address):
        raise ValueError(f"Invalid address: {address!r}")
    return remove_0x_prefix(address).lower()


def format_address(address: str, with_prefix: bool = False) -> str:
    """Render a normalized address for output."""
    return add_0x_prefix(address) if with_prefix else address


@dataclass(frozen=True)
class CompiledContract:
    """A compiler artifact. Never mutated; linking returns a new instance."""

    name: str
    abi: List[Dict[str, Any]]
    bytecode: bytes
    # library name -> byte offsets of the 20-byte address slots to fill
    link_references: Mapping[str, Tuple[int, ...]] = field(default_factory=dict)

    @property
    def constructor_inputs(self) -> List[Dict[str, Any]]:
        for item in self.abi:
            if item.get("type") == "constructor":
                return list(item.get("inputs", []))
        return []

    @property
    def needs_linking(self) -> bool:
        return bool(self.link_references)

    def linked(self, addresses: Mapping[str, str]) -> "CompiledContract":
        """
        Fill library address slots.

        Args:
            addresses: Library name -> hex address (prefix optional)

        Returns:
            New CompiledContract with no remaining link references

        Raises:
            UnknownReferenceError: If a referenced library has no address
        """
        code = bytearray(self.bytecode)
        for library, offsets in self.link_references.items():
            if library not in addresses:
                raise UnknownReferenceError(
                    library, f"Library {library} is not deployed; cannot link {self.name}"
                )
            address = bytes.fromhex(normalize_address(addresses[library]))
            if len(address) != ADDRESS_SIZE:
                raise ValueError(f"Library {library} address is not {ADDRESS_SIZE} bytes")
            for offset in offsets:
                code[offset : offset + ADDRESS_SIZE] = address

        return replace(self, bytecode=bytes(code), link_references={})


class ContractCreation(NamedTuple):
    """What a backend reports right after accepting a creation transaction."""

    transaction_id: str
    address: Optional[str] = None  # known up front on the UTXO chain only
    sender: Optional[str] = None


@dataclass
class DeployedContract:
    """Deployment record for one contract name."""

    # Required fields
    name: str
    transaction_id: str
    address: Optional[str] = None  # Normalized hex, filled on confirmation if unknown
    status: DeploymentStatus = DeploymentStatus.PENDING

    # Set once confirmed
    block_number: Optional[int] = None
    block_hash: Optional[str] = None

    # Metadata
    sender: Optional[str] = None
    is_lib: bool = False
    deployed_at: Optional[str] = None  # "%Y-%m-%d %H:%M:%S UTC"
    error: Optional[str] = None

    # Fields this version does not know about, written back untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    def confirm(
        self,
        address: Optional[str] = None,
        block_number: Optional[int] = None,
        block_hash: Optional[str] = None,
    ) -> None:
        """Settle a pending record as confirmed. No-op if already confirmed."""
        normalized = normalize_address(address) if address else None
        if not self._settle(DeploymentStatus.CONFIRMED):
            return
        if normalized:
            self.address = normalized
        self.block_number = block_number
        self.block_hash = block_hash

    def fail(self, error: str = "", block_number: Optional[int] = None) -> None:
        """Settle a pending record as failed. No-op if already failed."""
        if not self._settle(DeploymentStatus.FAILED):
            return
        self.error = error or None
        self.block_number = block_number

    def _settle(self, status: DeploymentStatus) -> bool:
        if self.status is status:
            return False
        if self.status.is_terminal:
            raise ValueError(
                f"Contract {self.name} is already {self.status.value}; "
                f"cannot mark it {status.value}"
            )
        self.status = status
        return True


@dataclass(frozen=True)
class DeploymentOptions:
    """Per-deployment settings passed by value into every create call."""

    name: Optional[str] = None  # Defaults to the compiled contract name
    as_lib: bool = False
    overwrite: bool = False
    gas_price: Optional[Decimal] = None  # Smallest chain unit; None = backend default
    gas_limit: int = DEFAULT_GAS_LIMIT
