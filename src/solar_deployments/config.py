"""Process configuration: RPC target selection and repository location."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, NamedTuple, Optional

from .constants import (
    DEFAULT_ENV,
    ETH_RPC_ENV,
    SBIT_RPC_ENV,
    SBIT_SENDER_ENV,
    SOLAR_CONFIRM_TIMEOUT_ENV,
    SOLAR_ENV_ENV,
    SOLAR_REPO_ENV,
)
from .exceptions import ConfigError
from .paths import get_repository_path
from .rpc import split_credentials
from .types import Platform

UNSPECIFIED_RPC = (
    f"Please specify RPC url by setting {SBIT_RPC_ENV} or {ETH_RPC_ENV} "
    "or using flag --sbit-rpc or --eth-rpc"
)


class RPCTarget(NamedTuple):
    """The one RPC endpoint deployments go to."""

    platform: Platform
    url: str
    sender: Optional[str] = None


@dataclass(frozen=True)
class SolarConfig:
    """Settings for one invocation. Exactly one RPC endpoint must be set."""

    sbit_rpc: Optional[str] = None
    sbit_sender: Optional[str] = None
    eth_rpc: Optional[str] = None
    env: str = DEFAULT_ENV
    repo: Optional[str] = None
    confirm_timeout: Optional[float] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SolarConfig":
        """
        Build configuration from environment variables.

        Raises:
            ConfigError: If SOLAR_CONFIRM_TIMEOUT is not a number
        """
        if environ is None:
            environ = os.environ

        timeout = environ.get(SOLAR_CONFIRM_TIMEOUT_ENV) or None
        try:
            confirm_timeout = float(timeout) if timeout is not None else None
        except ValueError as e:
            raise ConfigError(f"{SOLAR_CONFIRM_TIMEOUT_ENV} must be a number of seconds") from e

        return cls(
            sbit_rpc=environ.get(SBIT_RPC_ENV) or None,
            sbit_sender=environ.get(SBIT_SENDER_ENV) or None,
            eth_rpc=environ.get(ETH_RPC_ENV) or None,
            env=environ.get(SOLAR_ENV_ENV) or DEFAULT_ENV,
            repo=environ.get(SOLAR_REPO_ENV) or None,
            confirm_timeout=confirm_timeout,
        )

    def rpc_target(self) -> RPCTarget:
        """
        The configured RPC endpoint.

        Raises:
            ConfigError: If both or neither endpoints are set, or the URL is invalid
        """
        if self.sbit_rpc and self.eth_rpc:
            raise ConfigError(
                f"Both {SBIT_RPC_ENV} and {ETH_RPC_ENV} are set; choose one RPC target"
            )
        if not self.sbit_rpc and not self.eth_rpc:
            raise ConfigError(UNSPECIFIED_RPC)

        if self.sbit_rpc:
            target = RPCTarget(Platform.SBIT, self.sbit_rpc, self.sbit_sender)
        else:
            target = RPCTarget(Platform.ETHEREUM, self.eth_rpc)

        split_credentials(target.url)
        return target

    @property
    def address_prefix(self) -> bool:
        """Addresses are rendered with 0x exactly when the account chain is the target."""
        return bool(self.eth_rpc)

    @property
    def repository_path(self) -> Path:
        return get_repository_path(self.env, self.repo)
