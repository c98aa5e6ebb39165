"""Per-environment contracts repository (the address book)."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .exceptions import AlreadyExistsError, RepositoryFileError, UnknownReferenceError
from .types import DeployedContract, DeploymentStatus, format_address, normalize_address

logger = logging.getLogger(__name__)

# Keys written for every record; anything else round-trips through `extra`
_RECORD_FIELDS = (
    "address",
    "transaction_id",
    "status",
    "block_number",
    "block_hash",
    "sender",
    "is_lib",
    "deployed_at",
    "error",
)


def record_from_dict(name: str, data: Dict[str, Any]) -> DeployedContract:
    """
    Build a DeployedContract from its repository JSON form.

    Records written before status tracking existed carry no "status" field and
    are treated as confirmed.

    Raises:
        ValueError: If the record is not an object or its fields are invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"record for {name} is not an object")
    if "address" not in data and "transaction_id" not in data:
        raise ValueError(f"record for {name} has neither address nor transaction_id")

    address = data.get("address")
    try:
        address = normalize_address(address) if address else None
        status = DeploymentStatus(data.get("status", DeploymentStatus.CONFIRMED.value))
    except ValueError as e:
        raise ValueError(f"record for {name}: {e}") from e

    return DeployedContract(
        name=name,
        transaction_id=data.get("transaction_id") or "",
        address=address,
        status=status,
        block_number=data.get("block_number"),
        block_hash=data.get("block_hash"),
        sender=data.get("sender"),
        is_lib=bool(data.get("is_lib", False)),
        deployed_at=data.get("deployed_at"),
        error=data.get("error"),
        extra={k: v for k, v in data.items() if k not in _RECORD_FIELDS},
    )


def record_to_dict(contract: DeployedContract, address_prefix: bool = False) -> Dict[str, Any]:
    """Repository JSON form of a DeployedContract."""
    result: Dict[str, Any] = dict(contract.extra)
    result.update(
        {
            "address": format_address(contract.address, address_prefix)
            if contract.address
            else None,
            "transaction_id": contract.transaction_id,
            "status": contract.status.value,
            "block_number": contract.block_number,
            "block_hash": contract.block_hash,
            "sender": contract.sender,
            "is_lib": contract.is_lib,
            "deployed_at": contract.deployed_at,
        }
    )
    if contract.error:
        result["error"] = contract.error
    return result


class AddressBook:
    """
    Mapping from contract name to deployment record for one environment.

    The book is the single source of truth for address resolution. Writes go
    through `put` and reach disk only via `save`, which replaces the file
    atomically. Callers that share a book across threads hold `lock` for the
    whole check-put-save sequence.
    """

    def __init__(self, path: Union[Path, str], address_prefix: bool = False):
        """
        Create an empty book bound to a file path (nothing is read or written).

        Args:
            path: Repository file, conventionally solar.{env}.json
            address_prefix: Render addresses with a 0x prefix on save/resolve
        """
        self.path = Path(path)
        self.address_prefix = address_prefix
        self.lock = threading.RLock()
        self._contracts: Dict[str, DeployedContract] = {}
        self._dirty = False

    @classmethod
    def open(cls, path: Union[Path, str], address_prefix: bool = False) -> "AddressBook":
        """
        Load a repository file.

        Args:
            path: Repository file path
            address_prefix: Render addresses with a 0x prefix

        Returns:
            AddressBook with the file's records, or an empty one if the file
            does not exist yet

        Raises:
            RepositoryFileError: If the file exists but cannot be read or parsed
        """
        book = cls(path, address_prefix=address_prefix)
        if not book.path.exists():
            logger.debug("Repository %s does not exist, starting empty", book.path)
            return book

        try:
            with open(book.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RepositoryFileError(
                f"Cannot read contracts repository {book.path}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise RepositoryFileError(
                f"Contracts repository {book.path} must contain a JSON object"
            )

        for name, record in data.items():
            try:
                book._contracts[name] = record_from_dict(name, record)
            except ValueError as e:
                raise RepositoryFileError(
                    f"Malformed record in contracts repository {book.path}: {e}"
                ) from e

        logger.debug("Loaded %d contracts from %s", len(book._contracts), book.path)
        return book

    @property
    def dirty(self) -> bool:
        return self._dirty

    def __contains__(self, name: str) -> bool:
        return name in self._contracts

    def __len__(self) -> int:
        return len(self._contracts)

    def __iter__(self) -> Iterator[str]:
        return iter(self._contracts)

    def names(self) -> List[str]:
        return list(self._contracts)

    def items(self) -> List[Tuple[str, DeployedContract]]:
        return list(self._contracts.items())

    def get(self, name: str) -> Optional[DeployedContract]:
        """Look up a record by contract name. None if absent."""
        return self._contracts.get(name)

    def is_confirmed(self, name: str) -> bool:
        contract = self._contracts.get(name)
        return contract is not None and contract.status is DeploymentStatus.CONFIRMED

    def put(self, name: str, contract: DeployedContract, overwrite: bool = False) -> None:
        """
        Bind a name to a deployment record.

        Raises:
            AlreadyExistsError: If name is bound to a confirmed record and
                                overwrite is False
        """
        with self.lock:
            if self.is_confirmed(name) and not overwrite:
                raise AlreadyExistsError(
                    f"Contract {name} is already deployed in {self.path.name}; "
                    "use overwrite to redeploy"
                )
            self._contracts[name] = contract
            self._dirty = True

    def resolve(self, name: str) -> str:
        """
        Rendered address of a deployed contract, for placeholder expansion.

        Raises:
            UnknownReferenceError: If name is absent or not confirmed
        """
        contract = self._contracts.get(name)
        if contract is None or not contract.address:
            raise UnknownReferenceError(name)
        if contract.status is not DeploymentStatus.CONFIRMED:
            raise UnknownReferenceError(
                name, f"Invalid address expansion: {name} is {contract.status.value}"
            )
        return self.address_for(contract)

    def address_for(self, contract: DeployedContract) -> Optional[str]:
        """A record's address as this book renders it."""
        if not contract.address:
            return None
        return format_address(contract.address, self.address_prefix)

    def to_dict(self) -> Dict[str, Any]:
        return {
            name: record_to_dict(contract, self.address_prefix)
            for name, contract in self._contracts.items()
        }

    def save(self) -> None:
        """
        Persist the whole book.

        The document is written to a temporary file next to the target, synced,
        then renamed over it, so the file on disk is always either the previous
        complete book or the new one.

        Raises:
            RepositoryFileError: If writing fails (the previous file is intact)
        """
        with self.lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(self.to_dict(), f, indent=2)
                    f.write("\n")
                    f.flush()
                    os.fsync(f.fileno())
                # mkstemp creates 0600 files
                os.chmod(tmp_name, _file_mode(self.path))
                os.replace(tmp_name, self.path)
            except OSError as e:
                _discard(tmp_name)
                raise RepositoryFileError(
                    f"Cannot write contracts repository {self.path}: {e}"
                ) from e
            except BaseException:
                _discard(tmp_name)
                raise

            self._dirty = False
            logger.debug("Saved %d contracts to %s", len(self._contracts), self.path)


def _file_mode(path: Path) -> int:
    """Permission bits of the existing file, or the umask default for a new one."""
    try:
        return path.stat().st_mode & 0o777
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def _discard(tmp_name: str) -> None:
    try:
        os.unlink(tmp_name)
    except FileNotFoundError:
        pass
