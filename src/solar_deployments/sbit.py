"""Deployer for the UTXO chain (bitcoin-style JSON-RPC with contract extensions)."""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from .abi import encode_constructor_params
from .constants import (
    POLL_INTERVAL,
    SATOSHI_PER_COIN,
    SBIT_DEFAULT_GAS_PRICE,
    SBIT_EXCEPTED_NONE,
    SBIT_MIN_GAS_LIMIT,
    SBIT_MIN_GAS_PRICE,
)
from .exceptions import ArtifactError, DeploymentOptionsError, ProtocolError
from .polling import poll
from .rpc import RPCClient
from .types import (
    CompiledContract,
    ContractCreation,
    DeployedContract,
    DeploymentOptions,
    Platform,
    normalize_address,
)

logger = logging.getLogger(__name__)

REGTEST_CHAIN = "regtest"


def satoshi_to_coins(amount: Decimal) -> str:
    """Gas price in coin units, as the 8-decimal string createcontract accepts."""
    return f"{amount / SATOSHI_PER_COIN:.8f}"


def validate_options(options: DeploymentOptions) -> Decimal:
    """
    Check gas settings against chain minimums.

    Returns:
        Gas price in satoshi (default applied)

    Raises:
        DeploymentOptionsError: If gas limit or gas price is too low
    """
    if options.gas_limit < SBIT_MIN_GAS_LIMIT:
        raise DeploymentOptionsError(
            f"Gas limit {options.gas_limit} is below the minimum of {SBIT_MIN_GAS_LIMIT}"
        )

    gas_price = SBIT_DEFAULT_GAS_PRICE if options.gas_price is None else options.gas_price
    if gas_price < SBIT_MIN_GAS_PRICE:
        raise DeploymentOptionsError(
            f"Gas price {gas_price} satoshi is below the minimum of {SBIT_MIN_GAS_PRICE}"
        )
    if gas_price != gas_price.to_integral_value():
        raise DeploymentOptionsError(f"Gas price {gas_price} is not a whole number of satoshi")
    return gas_price


class SbitDeployer:
    """Contract deployment over a UTXO-chain node's RPC interface."""

    platform = Platform.SBIT

    def __init__(
        self,
        rpc_url: str,
        sender: Optional[str] = None,
        poll_interval: float = POLL_INTERVAL,
    ):
        """
        Args:
            rpc_url: Node RPC URL, credentials in the userinfo part
            sender: UTXO address paying for deployments (node's choice if None)
            poll_interval: Seconds between confirmation checks
        """
        self.rpc = RPCClient(rpc_url)
        self.sender = sender or None
        self.poll_interval = poll_interval

    def create_contract(
        self, compiled: CompiledContract, json_params: str, options: DeploymentOptions
    ) -> ContractCreation:
        gas_price = validate_options(options)
        if compiled.needs_linking:
            raise ArtifactError(f"{compiled.name} has unlinked library references")

        data = compiled.bytecode + encode_constructor_params(
            compiled.constructor_inputs, json_params
        )

        args: list = [data.hex(), options.gas_limit, satoshi_to_coins(gas_price)]
        if self.sender:
            args.append(self.sender)

        result = self.rpc.call("createcontract", *args)
        try:
            creation = ContractCreation(
                transaction_id=result["txid"],
                address=normalize_address(result["address"]),
                sender=result.get("sender", self.sender),
            )
        except (TypeError, KeyError, ValueError) as e:
            raise ProtocolError(f"Unexpected createcontract response: {result!r}") from e

        logger.info(
            "Created %s: txid=%s address=%s",
            compiled.name,
            creation.transaction_id,
            creation.address,
        )
        return creation

    def _mined_transaction(self, txid: str) -> Optional[Dict[str, Any]]:
        tx = self.rpc.call("gettransaction", txid)
        if not isinstance(tx, dict) or not isinstance(tx.get("confirmations"), int):
            raise ProtocolError(f"Unexpected gettransaction response for {txid}")
        return tx if tx["confirmations"] > 0 else None

    def confirm_contract(
        self, deployed: DeployedContract, timeout: Optional[float] = None
    ) -> DeployedContract:
        """
        Wait for the creation transaction to be mined and record the outcome.

        Args:
            deployed: Pending record; already settled records are returned as is
            timeout: Seconds to wait before giving up (None waits forever)

        Raises:
            ConfirmationTimeoutError: If not mined within timeout
            RPCError: If the node is unreachable or reports an error
            ProtocolError: If a response has an unexpected shape
        """
        if deployed.status.is_terminal:
            return deployed

        txid = deployed.transaction_id
        tx = poll(
            lambda: self._mined_transaction(txid),
            interval=self.poll_interval,
            timeout=timeout,
            description=f"{deployed.name} ({txid})",
        )

        receipts = self.rpc.call("gettransactionreceipt", txid)
        if not isinstance(receipts, list) or not all(isinstance(r, dict) for r in receipts):
            raise ProtocolError(f"Unexpected gettransactionreceipt response for {txid}")

        if not receipts:
            # node runs without -logevents; inclusion is all we know
            deployed.confirm(block_hash=tx.get("blockhash"))
            return deployed

        receipt = receipts[0]
        excepted = receipt.get("excepted", SBIT_EXCEPTED_NONE)
        if excepted != SBIT_EXCEPTED_NONE:
            deployed.fail(
                f"Contract creation failed: {excepted}", block_number=receipt.get("blockNumber")
            )
            return deployed

        try:
            deployed.confirm(
                address=receipt.get("contractAddress") or deployed.address,
                block_number=receipt.get("blockNumber"),
                block_hash=receipt.get("blockHash", tx.get("blockhash")),
            )
        except ValueError as e:
            raise ProtocolError(f"Invalid contractAddress in receipt for {txid}") from e
        return deployed

    def mine(self) -> None:
        """Produce one block, on regtest nodes only."""
        info = self.rpc.call("getblockchaininfo")
        if not isinstance(info, dict):
            raise ProtocolError("Unexpected getblockchaininfo response")
        if info.get("chain") != REGTEST_CHAIN:
            logger.debug("Not mining on %s chain", info.get("chain"))
            return

        address = self.sender or self.rpc.call("getnewaddress")
        blocks = self.rpc.call("generatetoaddress", 1, address)
        logger.info("Mined block %s", blocks[0] if blocks else None)
