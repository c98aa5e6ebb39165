"""The Deployer capability interface and backend selection."""

from typing import Callable, Dict, Optional, Protocol

from .config import RPCTarget, SolarConfig
from .eth import EthDeployer
from .sbit import SbitDeployer
from .types import CompiledContract, ContractCreation, DeployedContract, DeploymentOptions, Platform


class Deployer(Protocol):
    """
    Chain-specific contract deployment.

    Implementations hold no persistent state; they adapt one RPC endpoint.
    """

    platform: Platform

    def create_contract(
        self, compiled: CompiledContract, json_params: str, options: DeploymentOptions
    ) -> ContractCreation:
        """
        Submit a contract-creation transaction.

        json_params must already have its placeholders expanded.
        """
        ...

    def confirm_contract(
        self, deployed: DeployedContract, timeout: Optional[float] = None
    ) -> DeployedContract:
        """
        Wait until the transaction is included and settle the record as
        confirmed or failed. A settled record is returned unchanged.
        """
        ...

    def mine(self) -> None:
        """Produce a block where the backend allows it; otherwise do nothing."""
        ...


DEPLOYERS: Dict[Platform, Callable[..., Deployer]] = {
    Platform.SBIT: SbitDeployer,
    Platform.ETHEREUM: EthDeployer,
}


def create_deployer(config: SolarConfig) -> Deployer:
    """
    Build the deployer for the configured RPC endpoint.

    Raises:
        ConfigError: If the RPC target is missing, ambiguous or invalid
    """
    target: RPCTarget = config.rpc_target()
    return DEPLOYERS[target.platform](target.url, sender=target.sender)
