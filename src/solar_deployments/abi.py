"""Constructor argument encoding."""

import json
from typing import Any, Dict, List

from eth_abi import encode
from eth_abi.exceptions import EncodingError, ParseError
from eth_abi.grammar import ABIType, TupleType, parse
from eth_utils import is_hex, to_bytes
from eth_utils.abi import collapse_if_tuple

from .exceptions import ConstructorParamsError


def constructor_types(inputs: List[Dict[str, Any]]) -> List[str]:
    """ABI type strings of constructor inputs, tuples collapsed to (a,b,...)."""
    return [collapse_if_tuple(item) for item in inputs]


def _hex_to_bytes(abi_type: ABIType, value: Any) -> Any:
    # JSON has no bytes type; bytes and bytesN values arrive as hex strings
    if abi_type.is_array:
        if not isinstance(value, list):
            return value
        return [_hex_to_bytes(abi_type.item_type, item) for item in value]
    if isinstance(abi_type, TupleType):
        if not isinstance(value, list):
            return value
        return [_hex_to_bytes(c, item) for c, item in zip(abi_type.components, value)]
    if abi_type.base == "bytes" and isinstance(value, str) and is_hex(value):
        return to_bytes(hexstr=value)
    return value


def encode_constructor_params(inputs: List[Dict[str, Any]], json_params: str) -> bytes:
    """
    ABI-encode constructor arguments given as a JSON array.

    Placeholders must already be expanded.

    Args:
        inputs: Constructor ABI inputs
        json_params: JSON array of argument values ("" means no arguments)

    Returns:
        Encoded arguments to append to the contract bytecode

    Raises:
        ConstructorParamsError: If the JSON is invalid, the arity is wrong or a
                                value does not fit its ABI type
    """
    try:
        params = json.loads(json_params) if json_params.strip() else []
    except json.JSONDecodeError as e:
        raise ConstructorParamsError(f"Constructor params are not valid JSON: {e}") from e

    if not isinstance(params, list):
        raise ConstructorParamsError("Constructor params must be a JSON array")

    types = constructor_types(inputs)
    if len(params) != len(types):
        raise ConstructorParamsError(
            f"Constructor expects {len(types)} params ({', '.join(types)}), got {len(params)}"
        )

    if not types:
        return b""

    try:
        params = [_hex_to_bytes(parse(t), p) for t, p in zip(types, params)]
        return encode(types, params)
    except (EncodingError, ParseError, TypeError, ValueError) as e:
        raise ConstructorParamsError(f"Cannot encode constructor params: {e}") from e
