from __future__ import annotations

import json
from pathlib import Path

import pytest
from eth_utils import function_signature_to_4byte_selector

from huff_debug.abi import (
    FunctionSelector,
    abi_file_extractor,
    encode_calldata,
    function_table_from_abi,
    selector_id,
    split_types,
    table_from_wire,
    table_to_wire,
)

from conftest import BAR_ABI


def test_selector_id_known_value() -> None:
    assert selector_id("transfer(address,uint256)") == "0xa9059cbb"


def test_function_table_from_abi_keeps_declaration_order() -> None:
    table = function_table_from_abi(BAR_ABI)

    assert [sel.fn_sig for sel in table.values()] == ["foo()", "bar(uint256)"]
    bar = table[selector_id("bar(uint256)")]
    assert bar.args == ["uint256"]


def test_function_table_from_abi_first_duplicate_wins() -> None:
    abi = [
        {"type": "function", "name": "bar", "inputs": [{"name": "a", "type": "uint256"}]},
        {"type": "function", "name": "bar", "inputs": [{"name": "b", "type": "uint256"}]},
    ]
    table = function_table_from_abi(abi)
    assert len(table) == 1


def test_tuple_inputs_are_canonicalized() -> None:
    abi = [
        {
            "type": "function",
            "name": "settle",
            "inputs": [
                {
                    "name": "orders",
                    "type": "tuple[]",
                    "components": [{"name": "maker", "type": "address"}, {"name": "amount", "type": "uint256"}],
                },
                {"name": "flag", "type": "bool"},
            ],
        }
    ]
    (sel,) = function_table_from_abi(abi).values()
    assert sel.fn_sig == "settle((address,uint256)[],bool)"
    assert sel.args == ["(address,uint256)[]", "bool"]


def test_split_types() -> None:
    assert split_types("uint256,(address,bool)[],bytes32") == ["uint256", "(address,bool)[]", "bytes32"]
    assert split_types("") == []


def test_wire_roundtrip_shape() -> None:
    table = {"0x01": FunctionSelector(fn_id="0x01", fn_sig="bar(uint256)", args=["uint256"])}
    wire = table_to_wire(table)
    assert wire == {"0x01": {"fnSig": "bar(uint256)", "args": ["uint256"]}}
    assert table_from_wire(wire) == table


def test_table_from_wire_rejects_missing_signature() -> None:
    with pytest.raises(ValueError, match="fnSig"):
        table_from_wire({"0x01": {"args": []}})


def test_encode_calldata_uint() -> None:
    calldata = encode_calldata("bar(uint256)", [["uint256", "1"]])
    selector = "0x" + function_signature_to_4byte_selector("bar(uint256)").hex()
    assert calldata == selector + "00" * 31 + "01"


def test_encode_calldata_address_and_hex_int() -> None:
    to = "0x" + "00" * 19 + "01"
    calldata = encode_calldata("transfer(address,uint256)", [["address", to], ["uint256", "0x10"]])
    assert calldata == "0xa9059cbb" + "00" * 31 + "01" + "00" * 31 + "10"


def test_encode_calldata_no_args() -> None:
    assert encode_calldata("foo()", []) == selector_id("foo()")


def test_encode_calldata_array_and_bool() -> None:
    calldata = encode_calldata("set(uint8[],bool)", [["uint8[]", "[1, 2]"], ["bool", "true"]])
    body = calldata[10:]
    words = [body[i : i + 64] for i in range(0, len(body), 64)]
    assert int(words[0], 16) == 0x40  # offset of the array
    assert int(words[1], 16) == 1  # bool
    assert [int(w, 16) for w in words[2:]] == [2, 1, 2]


def test_encode_calldata_argument_count_mismatch() -> None:
    with pytest.raises(ValueError, match="takes 1 argument"):
        encode_calldata("bar(uint256)", [])


@pytest.mark.parametrize("value", ["uint256", "abc", "-1"])
def test_encode_calldata_bad_value(value) -> None:
    with pytest.raises(ValueError):
        encode_calldata("bar(uint256)", [["uint256", value]])


def test_abi_file_extractor_reads_artifacts(tmp_path: Path) -> None:
    p = tmp_path / "Counter.json"
    p.write_text(json.dumps({"abi": BAR_ABI, "bytecode": "0x00"}))

    table = abi_file_extractor(p)("ignored document text")
    assert [sel.fn_sig for sel in table.values()] == ["foo()", "bar(uint256)"]


def test_abi_file_extractor_rejects_non_abi(tmp_path: Path) -> None:
    p = tmp_path / "Counter.json"
    p.write_text(json.dumps({"bytecode": "0x00"}))
    with pytest.raises(ValueError, match="ABI"):
        abi_file_extractor(p)("")


@pytest.mark.parametrize("fn_sig", ["bar(uint256 x)", "bar(address to)"])
def test_encode_calldata_unparseable_signature(fn_sig) -> None:
    with pytest.raises(ValueError):
        encode_calldata(fn_sig, [["uint256", "1"]])
