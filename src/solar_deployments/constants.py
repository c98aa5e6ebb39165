"""Configuration constants for solar-deployments library."""

from decimal import Decimal

# Environment variables read by SolarConfig.from_env()
SBIT_RPC_ENV = "SBIT_RPC"
SBIT_SENDER_ENV = "SBIT_SENDER"
ETH_RPC_ENV = "ETH_RPC"
SOLAR_ENV_ENV = "SOLAR_ENV"
SOLAR_REPO_ENV = "SOLAR_REPO"
SOLAR_CONFIRM_TIMEOUT_ENV = "SOLAR_CONFIRM_TIMEOUT"

DEFAULT_ENV = "development"
REPOSITORY_FILENAME = "solar.{env}.json"

DEFAULT_GAS_LIMIT = 3_000_000

# Seconds between receipt polls while confirming
POLL_INTERVAL = 3.0

# HTTP timeout for a single JSON-RPC request
RPC_TIMEOUT = 30

# UTXO chain: amounts in satoshi, 1 coin = 10^8 satoshi
SATOSHI_PER_COIN = Decimal(10) ** 8
SBIT_MIN_GAS_LIMIT = 10_000
SBIT_MIN_GAS_PRICE = Decimal(40)
SBIT_DEFAULT_GAS_PRICE = Decimal(40)
# gettransactionreceipt reports this for a successful execution
SBIT_EXCEPTED_NONE = "None"

# Account chain: amounts in wei
ETH_MIN_GAS_LIMIT = 53_000  # intrinsic gas of a contract-creation transaction
ETH_MIN_GAS_PRICE = Decimal(0)
ETH_DEFAULT_GAS_PRICE = Decimal(20 * 10**9)
ETH_RECEIPT_SUCCESS = "0x1"
