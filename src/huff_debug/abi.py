"""Contract interface: function tables and calldata encoding.

A function table maps a function id (the 4-byte selector, `0x`-prefixed) to
its signature and its ordered argument placeholders. On the wire it is the
`functionSelectors` object exchanged with the panel:

    {"0x0c55699c": {"fnSig": "bar(uint256)", "args": ["uint256"]}}

Tables are built from a JSON ABI (the `huffc --artifacts` / solc format);
scraping them out of source text is left to the caller's extractor.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from eth_abi import encode
from eth_abi.exceptions import EncodingError, ParseError
from eth_utils import decode_hex, encode_hex, function_signature_to_4byte_selector, to_checksum_address

from huff_debug.utils import read_json_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FunctionSelector:
    fn_id: str
    fn_sig: str
    args: list[str] = field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        return {"fnSig": self.fn_sig, "args": list(self.args)}

    @classmethod
    def from_wire(cls, fn_id: str, raw: Any) -> FunctionSelector:
        if not isinstance(raw, dict) or not isinstance(raw.get("fnSig"), str):
            raise ValueError(f"function {fn_id!r} is missing a fnSig")
        args = raw.get("args") or []
        if not isinstance(args, list):
            raise ValueError(f"function {fn_id!r} args must be a list")
        return cls(fn_id=str(fn_id), fn_sig=raw["fnSig"], args=[str(a) for a in args])


FunctionTable = dict[str, FunctionSelector]

# Produces a function table from the active document's text.
SignatureExtractor = Callable[[str], FunctionTable]


def table_to_wire(table: FunctionTable) -> dict[str, dict[str, Any]]:
    return {fn_id: sel.to_wire() for fn_id, sel in table.items()}


def table_from_wire(raw: Any) -> FunctionTable:
    if not isinstance(raw, dict):
        raise ValueError("function table must be an object")
    return {str(k): FunctionSelector.from_wire(str(k), v) for k, v in raw.items()}


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


def _canonical_type(param: dict[str, Any]) -> str:
    t = str(param.get("type", ""))
    if t.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components") or [])
        return f"({inner}){t[len('tuple'):]}"
    return t


def split_types(type_list: str) -> list[str]:
    """Split `uint256,(address,bool)[]` at top-level commas."""
    out: list[str] = []
    depth = 0
    cur: list[str] = []
    for ch in type_list:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            out.append("".join(cur).strip())
            cur = []
            continue
        cur.append(ch)
    tail = "".join(cur).strip()
    if tail:
        out.append(tail)
    return out


def signature_types(fn_sig: str) -> list[str]:
    start = fn_sig.find("(")
    if start == -1 or not fn_sig.endswith(")"):
        raise ValueError(f"Not a function signature: {fn_sig!r}")
    return split_types(fn_sig[start + 1 : -1])


def selector_id(fn_sig: str) -> str:
    return encode_hex(function_signature_to_4byte_selector(fn_sig))


def function_table_from_abi(abi: list[dict[str, Any]]) -> FunctionTable:
    """
    Build a function table from ABI entries, in declaration order.

    When two entries render the same signature, the first one is kept.
    """
    table: FunctionTable = {}
    for entry in abi:
        if not isinstance(entry, dict) or entry.get("type") != "function":
            continue
        types = [_canonical_type(p) for p in entry.get("inputs") or []]
        fn_sig = f"{entry.get('name', '')}({','.join(types)})"
        fn_id = selector_id(fn_sig)
        if fn_id in table:
            logger.debug(f"Duplicate function {fn_sig} in ABI, keeping the first")
            continue
        table[fn_id] = FunctionSelector(fn_id=fn_id, fn_sig=fn_sig, args=types)
    return table


def load_abi_file(path: Path) -> list[dict[str, Any]]:
    """Read an ABI from a JSON file (a bare list or an artifact with an `abi` key)."""
    raw = read_json_file(path, context="ABI file")
    if isinstance(raw, dict) and isinstance(raw.get("abi"), list):
        raw = raw["abi"]
    if not isinstance(raw, list):
        raise ValueError(f"ABI file {path} does not contain an ABI list")
    return raw


def abi_file_extractor(path: Path) -> SignatureExtractor:
    """Extractor that ignores the document text and reads `path` on every load."""

    def _extract(_document: str) -> FunctionTable:
        return function_table_from_abi(load_abi_file(path))

    return _extract


# ---------------------------------------------------------------------------
# Calldata
# ---------------------------------------------------------------------------


def _coerce(abi_type: str, value: Any) -> Any:
    if abi_type.endswith("]") or abi_type.startswith("("):
        items = json.loads(value) if isinstance(value, str) else value
        if not isinstance(items, list):
            raise ValueError(f"Expected a JSON list for {abi_type}, got {value!r}")
        if abi_type.endswith("]"):
            inner = abi_type[: abi_type.rfind("[")]
            return [_coerce(inner, v) for v in items]
        return tuple(_coerce(t, v) for t, v in zip(split_types(abi_type[1:-1]), items))

    if not isinstance(value, str):
        return value
    value = value.strip()
    if abi_type.startswith(("uint", "int")):
        return int(value, 0)
    if abi_type == "bool":
        return value.lower() in ("true", "1", "yes")
    if abi_type == "address":
        return to_checksum_address(value)
    if abi_type.startswith("bytes"):
        return decode_hex(value)
    return value


def encode_calldata(fn_sig: str, args: list[tuple[str, Any]] | list[list[Any]]) -> str:
    """
    ABI-encode a call to `fn_sig`.

    Args:
        fn_sig: Canonical signature, e.g. `bar(uint256)`.
        args: Ordered (type placeholder, value) pairs as collected by the panel.

    Returns:
        `0x`-prefixed calldata: 4-byte selector followed by the encoded arguments.

    Raises:
        ValueError: If the argument count or a value does not fit the signature.
    """
    types = signature_types(fn_sig)
    if len(types) != len(args):
        raise ValueError(f"{fn_sig} takes {len(types)} argument(s), got {len(args)}")
    values = [_coerce(t, pair[1]) for t, pair in zip(types, args)]
    selector = function_signature_to_4byte_selector(fn_sig)
    try:
        encoded = encode(types, values)
    except (EncodingError, ParseError) as e:
        raise ValueError(str(e)) from e
    return encode_hex(selector + encoded)
