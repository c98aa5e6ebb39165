"""Deployer for the account chain (Ethereum JSON-RPC)."""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from eth_utils import is_hex

from .abi import encode_constructor_params
from .constants import (
    ETH_DEFAULT_GAS_PRICE,
    ETH_MIN_GAS_LIMIT,
    ETH_MIN_GAS_PRICE,
    ETH_RECEIPT_SUCCESS,
    POLL_INTERVAL,
)
from .exceptions import ArtifactError, DeploymentOptionsError, ProtocolError, RPCError
from .polling import poll
from .rpc import RPCClient
from .types import CompiledContract, ContractCreation, DeployedContract, DeploymentOptions, Platform

logger = logging.getLogger(__name__)


def validate_options(options: DeploymentOptions) -> int:
    """
    Check gas settings against chain minimums.

    Returns:
        Gas price in wei (default applied)

    Raises:
        DeploymentOptionsError: If gas limit or gas price is invalid
    """
    if options.gas_limit < ETH_MIN_GAS_LIMIT:
        raise DeploymentOptionsError(
            f"Gas limit {options.gas_limit} is below the minimum of {ETH_MIN_GAS_LIMIT}"
        )

    gas_price: Decimal = ETH_DEFAULT_GAS_PRICE if options.gas_price is None else options.gas_price
    if gas_price < ETH_MIN_GAS_PRICE:
        raise DeploymentOptionsError(f"Gas price {gas_price} wei is negative")
    if gas_price != gas_price.to_integral_value():
        raise DeploymentOptionsError(f"Gas price {gas_price} is not a whole number of wei")
    return int(gas_price)


def _hex_to_int(value: Any) -> Optional[int]:
    return int(value, 16) if isinstance(value, str) else None


class EthDeployer:
    """Contract deployment through an Ethereum node with an unlocked account."""

    platform = Platform.ETHEREUM

    def __init__(
        self,
        rpc_url: str,
        sender: Optional[str] = None,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.rpc = RPCClient(rpc_url)
        self.sender = sender or None
        self.poll_interval = poll_interval

    def _sender(self) -> str:
        if self.sender:
            return self.sender
        accounts = self.rpc.call("eth_accounts")
        if not isinstance(accounts, list):
            raise ProtocolError("Unexpected eth_accounts response")
        if not accounts:
            raise RPCError("Node has no accounts to deploy from")
        return accounts[0]

    def create_contract(
        self, compiled: CompiledContract, json_params: str, options: DeploymentOptions
    ) -> ContractCreation:
        gas_price = validate_options(options)
        if compiled.needs_linking:
            raise ArtifactError(f"{compiled.name} has unlinked library references")

        data = compiled.bytecode + encode_constructor_params(
            compiled.constructor_inputs, json_params
        )
        sender = self._sender()

        tx_hash = self.rpc.call(
            "eth_sendTransaction",
            {
                "from": sender,
                "data": "0x" + data.hex(),
                "gas": hex(options.gas_limit),
                "gasPrice": hex(gas_price),
            },
        )
        if not isinstance(tx_hash, str) or not is_hex(tx_hash):
            raise ProtocolError(f"Unexpected eth_sendTransaction response: {tx_hash!r}")

        logger.info("Created %s: tx=%s", compiled.name, tx_hash)
        return ContractCreation(transaction_id=tx_hash, sender=sender)

    def _receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        receipt = self.rpc.call("eth_getTransactionReceipt", tx_hash)
        if receipt is not None and not isinstance(receipt, dict):
            raise ProtocolError(f"Unexpected eth_getTransactionReceipt response for {tx_hash}")
        return receipt

    def confirm_contract(
        self, deployed: DeployedContract, timeout: Optional[float] = None
    ) -> DeployedContract:
        if deployed.status.is_terminal:
            return deployed

        tx_hash = deployed.transaction_id
        receipt = poll(
            lambda: self._receipt(tx_hash),
            interval=self.poll_interval,
            timeout=timeout,
            description=f"{deployed.name} ({tx_hash})",
        )

        try:
            block_number = _hex_to_int(receipt.get("blockNumber"))
        except ValueError as e:
            raise ProtocolError(f"Invalid blockNumber in receipt for {tx_hash}") from e

        # receipts from before Byzantium carry no status field
        status = receipt.get("status", ETH_RECEIPT_SUCCESS)
        address = receipt.get("contractAddress")
        if status != ETH_RECEIPT_SUCCESS or not address:
            deployed.fail(f"Contract creation reverted in {tx_hash}", block_number=block_number)
            return deployed

        try:
            deployed.confirm(
                address=address,
                block_number=block_number,
                block_hash=receipt.get("blockHash"),
            )
        except ValueError as e:
            raise ProtocolError(f"Invalid contractAddress in receipt for {tx_hash}") from e
        return deployed

    def mine(self) -> None:
        """Block production is automatic on this chain."""
        return None
