"""Command line interface: solar deploy / status / address."""

import dataclasses
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path

import click

from .artifacts import load_compiled_contract
from .config import SolarConfig
from .constants import (
    DEFAULT_ENV,
    DEFAULT_GAS_LIMIT,
    ETH_RPC_ENV,
    SBIT_RPC_ENV,
    SBIT_SENDER_ENV,
    SOLAR_ENV_ENV,
    SOLAR_REPO_ENV,
)
from .deployments import DeploymentManager
from .events import Event, EventChannel
from .exceptions import SolarError
from .repository import AddressBook
from .types import DeploymentOptions, DeploymentStatus


class MinInt(click.ParamType):
    name = "minint"

    def __init__(self, min_value):
        self.min_value = min_value

    def convert(self, value, param, ctx):
        try:
            ivalue = int(value)
        except ValueError:
            self.fail(f"{value} is not a valid integer", param, ctx)
        if ivalue < self.min_value:
            self.fail(
                f"{value} is less than the minimum allowed value of {self.min_value}", param, ctx
            )
        return ivalue


class Amount(click.ParamType):
    """Arbitrary-precision non-negative decimal amount."""

    name = "amount"

    def convert(self, value, param, ctx):
        if isinstance(value, Decimal):
            return value
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            self.fail(f"{value} is not a valid amount", param, ctx)
        if not amount.is_finite() or amount < 0:
            self.fail(f"{value} is not a valid amount", param, ctx)
        return amount


def echo_sink(event: Event) -> None:
    details = " ".join(f"{k}={v}" for k, v in event.data.items() if v is not None)
    click.echo(f"{event.kind.value:<15}{event.contract} {details}".rstrip())


@click.group()
@click.option("--sbit-rpc", envvar=SBIT_RPC_ENV, help="UTXO chain RPC provider url")
@click.option("--sbit-sender", envvar=SBIT_SENDER_ENV, help="(sbit) Sender UTXO address")
@click.option("--eth-rpc", envvar=ETH_RPC_ENV, help="Ethereum RPC provider url")
@click.option(
    "--env", envvar=SOLAR_ENV_ENV, default=DEFAULT_ENV, show_default=True, help="Environment name"
)
@click.option("--repo", envvar=SOLAR_REPO_ENV, help="Path of contracts repository")
@click.option("--verbose", "-v", is_flag=True, help="Log RPC calls")
@click.pass_context
def cli(ctx, sbit_rpc, sbit_sender, eth_rpc, env, repo, verbose):
    """Solidity smart contract deployment management."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = SolarConfig(
        sbit_rpc=sbit_rpc or None,
        sbit_sender=sbit_sender or None,
        eth_rpc=eth_rpc or None,
        env=env,
        repo=repo or None,
    )


@cli.command()
@click.argument("artifact", type=click.Path(dir_okay=False, exists=True, path_type=Path))
@click.argument("params", required=False, default="[]")
@click.option("--contract", "-c", help="Contract to pick from a combined JSON file")
@click.option("--name", help="Name to record the deployment under")
@click.option("--lib", "as_lib", is_flag=True, help="Deploy as a library")
@click.option("--force", "-f", "overwrite", is_flag=True, help="Overwrite a deployed contract")
@click.option(
    "--gas-limit", type=MinInt(1), default=DEFAULT_GAS_LIMIT, show_default=True, help="Gas limit"
)
@click.option("--gas-price", type=Amount(), help="Gas price in satoshi (sbit) or wei (eth)")
@click.option("--timeout", type=float, help="Seconds to wait for confirmation")
@click.pass_obj
def deploy(config, artifact, params, contract, name, as_lib, overwrite, gas_limit, gas_price, timeout):
    """Deploy ARTIFACT with JSON constructor PARAMS ($Name expands to an address)."""
    if timeout is not None:
        config = dataclasses.replace(config, confirm_timeout=timeout)

    options = DeploymentOptions(
        name=name,
        as_lib=as_lib,
        overwrite=overwrite,
        gas_price=gas_price,
        gas_limit=gas_limit,
    )
    try:
        compiled = load_compiled_contract(artifact, contract)
        with EventChannel(sink=echo_sink) as events:
            manager = DeploymentManager.from_config(config, events=events)
            deployed = manager.deploy(compiled, params, options)
    except SolarError as e:
        raise click.ClickException(str(e)) from e

    if deployed.status is DeploymentStatus.FAILED:
        raise click.ClickException(f"Deployment of {deployed.name} failed: {deployed.error}")


def _open_repository(config: SolarConfig) -> AddressBook:
    try:
        return AddressBook.open(config.repository_path, address_prefix=config.address_prefix)
    except SolarError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.pass_obj
def status(config):
    """List contracts recorded for the environment."""
    repository = _open_repository(config)
    if not len(repository):
        click.echo(f"No contracts in {repository.path}")
        return

    for name, contract in repository.items():
        kind = "lib" if contract.is_lib else "contract"
        click.echo(
            f"{name}\t{kind}\t{contract.status.value}\t"
            f"{repository.address_for(contract) or '-'}\t{contract.transaction_id}"
        )


@cli.command()
@click.argument("name")
@click.pass_obj
def address(config, name):
    """Print the address of a confirmed contract."""
    repository = _open_repository(config)
    try:
        click.echo(repository.resolve(name))
    except SolarError as e:
        raise click.ClickException(str(e)) from e


def main():
    cli()
