"""Main API for solar-deployments library."""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .config import SolarConfig
from .deployer import Deployer, create_deployer
from .events import EventChannel, EventKind
from .exceptions import AlreadyExistsError, SolarError
from .expansion import expand
from .repository import AddressBook
from .types import CompiledContract, DeployedContract, DeploymentOptions, DeploymentStatus

logger = logging.getLogger(__name__)


class DeploymentState(Enum):
    """Progress of a single deployment."""

    UNSTARTED = "unstarted"
    CREATED = "created"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


class DeploymentManager:
    """Drives contract deployments and records them in the address book."""

    def __init__(
        self,
        deployer: Deployer,
        repository: AddressBook,
        events: Optional[EventChannel] = None,
        confirm_timeout: Optional[float] = None,
    ):
        """
        Initialize the deployment manager.

        Args:
            deployer: Backend adapter for the configured RPC endpoint
            repository: Address book for the current environment; only this
                        manager should mutate it
            events: Channel for lifecycle events (none emitted if None)
            confirm_timeout: Seconds to wait for each confirmation (None waits forever)
        """
        self.deployer = deployer
        self.repository = repository
        self.events = events
        self.confirm_timeout = confirm_timeout
        self.state = DeploymentState.UNSTARTED

    @classmethod
    def from_config(
        cls, config: SolarConfig, events: Optional[EventChannel] = None
    ) -> "DeploymentManager":
        """
        Build the deployer and open the address book for a configuration.

        Raises:
            ConfigError: If the RPC target is missing, ambiguous or invalid
            RepositoryFileError: If the repository file exists but is malformed
        """
        deployer = create_deployer(config)
        repository = AddressBook.open(
            config.repository_path, address_prefix=config.address_prefix
        )
        return cls(deployer, repository, events=events, confirm_timeout=config.confirm_timeout)

    def _transition(self, state: DeploymentState, contract: str, **data) -> None:
        self.state = state
        self._emit(EventKind(state.value), contract, **data)

    def _emit(self, kind: EventKind, contract: str, **data) -> None:
        if self.events is not None:
            self.events.emit(kind, contract, **data)

    def expand_params(self, json_params: str) -> str:
        """
        Replace $Name/${Name} placeholders with addresses from the book.

        Raises:
            UnknownReferenceError: If a placeholder names an unknown contract
        """
        return expand(json_params, self.repository.resolve)

    def link(self, compiled: CompiledContract) -> CompiledContract:
        """
        Fill library address slots from the book.

        Raises:
            UnknownReferenceError: If a library is not in the book
        """
        if not compiled.needs_linking:
            return compiled
        addresses = {lib: self.repository.resolve(lib) for lib in compiled.link_references}
        return compiled.linked(addresses)

    def deploy(
        self,
        compiled: CompiledContract,
        json_params: str = "[]",
        options: Optional[DeploymentOptions] = None,
    ) -> DeployedContract:
        """
        Deploy one contract: create, mine if the backend allows, confirm, record.

        Nothing is written when creation fails. Once a transaction exists it is
        saved as PENDING before confirmation starts, so an interrupted run still
        leaves it in the book; the settled outcome then replaces it, even when
        confirmation fails.

        Args:
            compiled: Contract to deploy
            json_params: JSON array of constructor arguments, may hold placeholders
            options: Deployment options (defaults apply if None)

        Returns:
            The deployment record, CONFIRMED or FAILED (reverted)

        Raises:
            AlreadyExistsError: If the name is deployed and overwrite is not set
            UnknownReferenceError: If params or libraries reference unknown contracts
            RPCError: If the backend fails (record written as FAILED after creation)
            ProtocolError: If the backend answers with an unexpected shape
        """
        if options is None:
            options = DeploymentOptions()
        name = options.name or compiled.name
        self.state = DeploymentState.UNSTARTED

        with self.repository.lock:
            if self.repository.is_confirmed(name) and not options.overwrite:
                raise AlreadyExistsError(
                    f"Contract {name} is already deployed; use overwrite to redeploy"
                )

            self._emit(EventKind.DEPLOY_STARTED, name)
            params = self.expand_params(json_params)
            linked = self.link(compiled)

            creation = self.deployer.create_contract(linked, params, options)
            deployed = DeployedContract(
                name=name,
                transaction_id=creation.transaction_id,
                address=creation.address,
                sender=creation.sender,
                is_lib=options.as_lib,
                deployed_at=_utc_now(),
            )
            self._transition(DeploymentState.CREATED, name, transaction_id=creation.transaction_id)
            self.repository.put(name, deployed, overwrite=options.overwrite)
            self.repository.save()
            logger.info("Recorded %s as pending in %s", name, self.repository.path)

            self._transition(DeploymentState.CONFIRMING, name)
            try:
                self.deployer.mine()
                self.deployer.confirm_contract(deployed, timeout=self.confirm_timeout)
            except SolarError as e:
                logger.error("Confirming %s failed: %s", name, e)
                if not deployed.status.is_terminal:
                    deployed.fail(str(e))
                self._record(deployed)
                raise

            self._record(deployed)
            return deployed

    def _record(self, deployed: DeployedContract) -> None:
        name = deployed.name
        if deployed.status is DeploymentStatus.CONFIRMED:
            self._transition(
                DeploymentState.CONFIRMED,
                name,
                address=self.repository.address_for(deployed),
                block_number=deployed.block_number,
            )
        else:
            self._transition(DeploymentState.FAILED, name, error=deployed.error)

        # replaces the pending record saved right after creation
        self.repository.put(name, deployed, overwrite=True)
        self.repository.save()
        self._emit(EventKind.SAVED, name, path=str(self.repository.path))
        logger.info("Recorded %s as %s in %s", name, deployed.status.value, self.repository.path)

    def mine(self) -> None:
        """Ask the backend to produce a block (no-op where mining is automatic)."""
        self.deployer.mine()
