"""Unit tests for compiled contract artifact parsers."""

import json
from pathlib import Path

import pytest

from solar_deployments.artifacts import (
    extract_placeholders,
    load_compiled_contract,
    parse_artifact,
    parse_combined_json,
)
from solar_deployments.exceptions import ArtifactError

LIB_PLACEHOLDER = "__contracts/MathLib.sol:MathLib".ljust(40, "_")
HASHED_PLACEHOLDER = "__$" + "a" * 34 + "$__"


class TestParseArtifact:
    """Test the single-contract artifact format."""

    def test_parses_artifact_file(self, fixtures_dir: Path):
        compiled = load_compiled_contract(fixtures_dir / "SimpleStorage.json")

        assert compiled.name == "SimpleStorage"
        assert compiled.bytecode == bytes.fromhex("6080604052")
        assert compiled.link_references == {}
        assert compiled.abi[0]["type"] == "constructor"

    def test_link_references_give_offsets(self, lib_user):
        assert lib_user.link_references == {"MathLib": (3,)}
        assert len(lib_user.bytecode) == 24
        assert lib_user.bytecode[3:23] == bytes(20)

    def test_named_placeholder_is_blanked(self):
        """Test that hex letters inside a placeholder do not survive in the slot."""
        compiled = parse_artifact(
            {
                "contractName": "LibUser",
                "abi": [],
                "bytecode": "0x60" + LIB_PLACEHOLDER + "ff",
                "linkReferences": {
                    "contracts/MathLib.sol": {"MathLib": [{"start": 1, "length": 20}]}
                },
            }
        )

        assert compiled.bytecode == b"\x60" + bytes(20) + b"\xff"

    def test_link_reference_past_end(self):
        with pytest.raises(ArtifactError):
            parse_artifact(
                {
                    "contractName": "LibUser",
                    "abi": [],
                    "bytecode": "0x6080",
                    "linkReferences": {"Lib.sol": {"Lib": [{"start": 1, "length": 20}]}},
                }
            )

    def test_name_from_argument_when_missing(self):
        compiled = parse_artifact({"abi": [], "bytecode": "0x00"}, name="Anon")

        assert compiled.name == "Anon"

    def test_missing_name(self):
        with pytest.raises(ArtifactError):
            parse_artifact({"abi": [], "bytecode": "0x00"})

    def test_missing_bytecode(self):
        with pytest.raises(ArtifactError):
            parse_artifact({"contractName": "X", "abi": []})

    def test_standard_json_bytecode_object(self):
        compiled = parse_artifact(
            {"contractName": "X", "abi": [], "bytecode": {"object": "6001"}}
        )

        assert compiled.bytecode == b"\x60\x01"

    def test_placeholder_without_link_references(self):
        compiled = parse_artifact(
            {"contractName": "X", "abi": [], "bytecode": "0x60" + LIB_PLACEHOLDER}
        )

        assert compiled.link_references == {"MathLib": (1,)}

    def test_invalid_hex(self):
        with pytest.raises(ArtifactError):
            parse_artifact({"contractName": "X", "abi": [], "bytecode": "0xzz"})

    def test_abi_as_json_string(self):
        compiled = parse_artifact({"contractName": "X", "abi": "[]", "bytecode": "00"})

        assert compiled.abi == []

    def test_abi_not_a_list(self):
        with pytest.raises(ArtifactError):
            parse_artifact({"contractName": "X", "abi": {"type": "function"}, "bytecode": "00"})


class TestExtractPlaceholders:
    def test_replaces_named_placeholders(self):
        code, offsets = extract_placeholders("6080" + LIB_PLACEHOLDER + "00" + LIB_PLACEHOLDER, "X")

        assert code == "6080" + "0" * 40 + "00" + "0" * 40
        assert offsets == {"MathLib": (2, 23)}

    def test_no_placeholders(self):
        assert extract_placeholders("6080", "X") == ("6080", {})

    def test_hashed_placeholder_needs_link_references(self):
        with pytest.raises(ArtifactError, match="linkReferences"):
            extract_placeholders("60" + HASHED_PLACEHOLDER, "X")

    def test_truncated_placeholder(self):
        with pytest.raises(ArtifactError):
            extract_placeholders("60__contracts", "X")


class TestParseCombinedJson:
    """Test solc --combined-json output."""

    @pytest.fixture
    def combined(self):
        return {
            "contracts": {
                "contracts/A.sol:A": {"abi": "[]", "bin": "6080"},
                "contracts/B.sol:B": {"abi": [], "bin": "6080" + LIB_PLACEHOLDER},
                "other/A.sol:A": {"abi": [], "bin": "6001"},
            }
        }

    def test_picks_by_short_name(self, combined):
        compiled = parse_combined_json(combined, "B")

        assert compiled.name == "B"
        assert compiled.link_references == {"MathLib": (2,)}

    def test_picks_by_full_key(self, combined):
        compiled = parse_combined_json(combined, "other/A.sol:A")

        assert compiled.bytecode == b"\x60\x01"

    def test_ambiguous_name(self, combined):
        with pytest.raises(ArtifactError, match="ambiguous"):
            parse_combined_json(combined, "A")

    def test_unknown_name(self, combined):
        with pytest.raises(ArtifactError, match="not found"):
            parse_combined_json(combined, "C")

    def test_name_required_for_many_contracts(self, combined):
        with pytest.raises(ArtifactError):
            parse_combined_json(combined)

    def test_single_contract_needs_no_name(self):
        compiled = parse_combined_json({"contracts": {"a.sol:Only": {"abi": [], "bin": "00"}}})

        assert compiled.name == "Only"

    def test_load_combined_file(self, tmp_path: Path, combined):
        path = tmp_path / "combined.json"
        path.write_text(json.dumps(combined))

        assert load_compiled_contract(path, "B").name == "B"


class TestLoadCompiledContract:
    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ArtifactError):
            load_compiled_contract(tmp_path / "missing.json")

    def test_malformed_file(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{")

        with pytest.raises(ArtifactError):
            load_compiled_contract(path)
