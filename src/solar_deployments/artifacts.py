"""Compiled contract artifact parsers for solar-deployments library."""

import json
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from eth_utils import remove_0x_prefix

from .exceptions import ArtifactError
from .types import ADDRESS_SIZE, CompiledContract

# An unlinked library slot in hex bytecode: 40 characters starting with "__"
PLACEHOLDER_LENGTH = ADDRESS_SIZE * 2


def _parse_abi(abi: Any, name: str) -> List[Dict[str, Any]]:
    # solc --combined-json emits the ABI as a JSON string before 0.8
    if isinstance(abi, str):
        try:
            abi = json.loads(abi)
        except json.JSONDecodeError as e:
            raise ArtifactError(f"ABI of {name} is not valid JSON") from e
    if not isinstance(abi, list):
        raise ArtifactError(f"ABI of {name} must be a list")
    return abi


def extract_placeholders(hex_code: str, name: str) -> Tuple[str, Dict[str, Tuple[int, ...]]]:
    """
    Replace "__path:Lib____" placeholders with zeros and record their offsets.

    Args:
        hex_code: Unprefixed hex bytecode, possibly with placeholders
        name: Contract name, for error messages

    Returns:
        Tuple of (hex_code_without_placeholders, library -> byte offsets)

    Raises:
        ArtifactError: If a placeholder is hashed ("__$...$__"), which needs
                       linkReferences to map back to a library name
    """
    offsets: Dict[str, List[int]] = defaultdict(list)
    parts = []
    pos = 0
    while True:
        start = hex_code.find("__", pos)
        if start < 0:
            break
        slot = hex_code[start : start + PLACEHOLDER_LENGTH]
        reference = slot.strip("_")
        if len(slot) != PLACEHOLDER_LENGTH or not reference:
            raise ArtifactError(f"Truncated library placeholder in {name} bytecode")
        if reference.startswith("$"):
            raise ArtifactError(
                f"{name} uses hashed library placeholders; provide an artifact with linkReferences"
            )

        library = reference.split(":")[-1]
        offsets[library].append(start // 2)
        parts.append(hex_code[pos:start])
        parts.append("0" * PLACEHOLDER_LENGTH)
        pos = start + PLACEHOLDER_LENGTH

    parts.append(hex_code[pos:])
    return "".join(parts), {lib: tuple(o) for lib, o in offsets.items()}


def _decode_bytecode(hex_code: str, name: str) -> bytes:
    try:
        return bytes.fromhex(hex_code)
    except ValueError as e:
        raise ArtifactError(f"Bytecode of {name} is not valid hex") from e


def parse_artifact(data: Dict[str, Any], name: Optional[str] = None) -> CompiledContract:
    """
    Parse a single-contract artifact (hardhat/truffle style).

    Expected fields: abi, bytecode (hex string, or {"object": hex}), and
    optionally contractName and linkReferences
    ({source: {Lib: [{"start": n, "length": 20}]}}).

    Raises:
        ArtifactError: If required fields are missing or malformed
    """
    contract_name = data.get("contractName") or name
    if not contract_name:
        raise ArtifactError("Artifact has no contractName; pass a name")
    if "abi" not in data or "bytecode" not in data:
        raise ArtifactError(f"Artifact for {contract_name} must have abi and bytecode")

    bytecode = data["bytecode"]
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object", "")
    if not isinstance(bytecode, str):
        raise ArtifactError(f"Bytecode of {contract_name} must be a hex string")

    link_references: Dict[str, Tuple[int, ...]] = {}
    for libraries in (data.get("linkReferences") or {}).values():
        for library, slots in libraries.items():
            link_references[library] = link_references.get(library, ()) + tuple(
                slot["start"] for slot in slots
            )

    hex_code = remove_0x_prefix(bytecode)
    if link_references:
        hex_code = _zero_slots(hex_code, link_references)
    else:
        hex_code, link_references = extract_placeholders(hex_code, contract_name)

    return CompiledContract(
        name=contract_name,
        abi=_parse_abi(data["abi"], contract_name),
        bytecode=_decode_bytecode(hex_code, contract_name),
        link_references=link_references,
    )


def _zero_slots(hex_code: str, link_references: Dict[str, Tuple[int, ...]]) -> str:
    """Blank every 20-byte library slot, whatever placeholder text it holds."""
    chars = list(hex_code)
    for offsets in link_references.values():
        for offset in offsets:
            start = offset * 2
            if start + PLACEHOLDER_LENGTH > len(chars):
                raise ArtifactError(
                    f"Library slot at byte {offset} is past the end of the bytecode"
                )
            chars[start : start + PLACEHOLDER_LENGTH] = "0" * PLACEHOLDER_LENGTH
    return "".join(chars)


def parse_combined_json(data: Dict[str, Any], name: Optional[str] = None) -> CompiledContract:
    """
    Parse `solc --combined-json abi,bin` output.

    Args:
        data: Parsed combined JSON document
        name: Contract name, or "source:Name"; optional if there is one contract

    Raises:
        ArtifactError: If the contract is missing or the name is ambiguous
    """
    contracts: Dict[str, Any] = data.get("contracts") or {}
    if name is None:
        if len(contracts) != 1:
            raise ArtifactError(
                f"Combined JSON holds {len(contracts)} contracts; pass a contract name"
            )
        key = next(iter(contracts))
    elif name in contracts:
        key = name
    else:
        matches = [k for k in contracts if k.split(":")[-1] == name]
        if not matches:
            raise ArtifactError(f"Contract {name} not found in combined JSON")
        if len(matches) > 1:
            raise ArtifactError(f"Contract name {name} is ambiguous: {', '.join(matches)}")
        key = matches[0]

    entry = contracts[key]
    contract_name = key.split(":")[-1]
    if "abi" not in entry or "bin" not in entry:
        raise ArtifactError(f"Combined JSON entry {key} must have abi and bin")

    hex_code, link_references = extract_placeholders(remove_0x_prefix(entry["bin"]), contract_name)
    return CompiledContract(
        name=contract_name,
        abi=_parse_abi(entry["abi"], contract_name),
        bytecode=_decode_bytecode(hex_code, contract_name),
        link_references=link_references,
    )


def load_compiled_contract(
    file_path: Union[Path, str], name: Optional[str] = None
) -> CompiledContract:
    """
    Load a compiled contract from a JSON file of either supported format.

    Args:
        file_path: Artifact or combined JSON file
        name: Contract to pick (required for multi-contract combined JSON)

    Raises:
        ArtifactError: If the file cannot be read or parsed
    """
    try:
        with open(file_path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ArtifactError(f"Cannot read artifact {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise ArtifactError(f"Artifact {file_path} must contain a JSON object")

    if "contracts" in data:
        return parse_combined_json(data, name)
    return parse_artifact(data, name)
