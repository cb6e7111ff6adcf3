"""Panel-side model of the function debugger.

`FunctionPanel` is the page half of the message protocol: it shows one option
per function signature, renders an input per argument of the selected
function and sends `start-debug` to the host. Its state lives in a
`WebviewStateStore`, one per panel, so it survives the panel being hidden and
shown again. The store only outlives the process when it is given a file.

States:
    Idle              no function selected (fresh panel, or after a reload)
    FunctionSelected  a function is selected and its inputs are rendered
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from huff_debug.abi import FunctionSelector, FunctionTable, table_from_wire, table_to_wire
from huff_debug.utils import atomic_write_text, read_json_file

logger = logging.getLogger(__name__)

PostMessage = Callable[[dict[str, Any]], None]


@dataclass
class WebviewState:
    function_selectors: FunctionTable = field(default_factory=dict)
    selected_function: FunctionSelector | None = None
    # fn_id -> arg index -> last typed value
    args_values: dict[str, dict[int, str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        selected = None
        if self.selected_function is not None:
            selected = [self.selected_function.fn_id, self.selected_function.to_wire()]
        return {
            "functionSelectors": table_to_wire(self.function_selectors),
            "selectedFunction": selected,
            "argsValues": {
                fn_id: {str(i): v for i, v in values.items()} for fn_id, values in self.args_values.items()
            },
        }

    @classmethod
    def from_dict(cls, raw: Any) -> WebviewState:
        if not isinstance(raw, dict):
            return cls()
        try:
            table = table_from_wire(raw.get("functionSelectors") or {})
        except ValueError as e:
            logger.warning(f"Discarding stored function selectors: {e}")
            table = {}

        selected = None
        sel = raw.get("selectedFunction")
        if isinstance(sel, list) and len(sel) == 2:
            try:
                selected = FunctionSelector.from_wire(str(sel[0]), sel[1])
            except ValueError as e:
                logger.warning(f"Discarding stored selected function: {e}")

        args_values: dict[str, dict[int, str]] = {}
        for fn_id, values in (raw.get("argsValues") or {}).items():
            if not isinstance(values, dict):
                continue
            parsed: dict[int, str] = {}
            for k, v in values.items():
                try:
                    parsed[int(k)] = str(v)
                except (TypeError, ValueError):
                    continue
            args_values[str(fn_id)] = parsed

        return cls(function_selectors=table, selected_function=selected, args_values=args_values)


class WebviewStateStore:
    """
    Per-panel key-value store for `WebviewState`.

    In memory by default. With a `path`, every write is persisted as JSON and
    the state is reloaded from it on construction.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._state: dict[str, Any] = {}
        if path is not None and path.exists():
            try:
                loaded = read_json_file(path, context="panel state")
            except ValueError as e:
                logger.warning(f"Ignoring unreadable panel state {path}: {e}")
                loaded = {}
            self._state = loaded if isinstance(loaded, dict) else {}

    def get_state(self) -> WebviewState:
        return WebviewState.from_dict(self._state)

    def set_state(self, state: WebviewState) -> None:
        self._state = state.to_dict()
        if self.path is not None:
            atomic_write_text(self.path, json.dumps(self._state, indent=2, sort_keys=True))


@dataclass
class ArgumentInput:
    name: str
    value: str


class FunctionPanel:
    def __init__(self, store: WebviewStateStore, post_message: PostMessage) -> None:
        self.store = store
        self.post_message = post_message
        self.options: list[str] = []
        self.selected: FunctionSelector | None = None
        self.inputs: list[ArgumentInput] = []

    @property
    def is_function_selected(self) -> bool:
        return self.selected is not None

    def restore(self) -> None:
        """Rebuild options, selection and inputs from the persisted state."""
        state = self.store.get_state()
        self.options = [sel.fn_sig for sel in state.function_selectors.values()]
        self.selected = None
        self.inputs = []
        if state.selected_function is not None:
            self.select_function(state.selected_function.fn_sig)

    def request_interface(self) -> None:
        """The "Load interface" button: clear the options and ask the host for a table."""
        self.options = []
        self.post_message({"type": "loadDocument"})

    def receive(self, message: dict[str, Any]) -> None:
        """Handle a message posted by the host. Unknown types are ignored."""
        if not isinstance(message, dict):
            return
        if message.get("type") == "receiveContractInterface":
            try:
                self.load_contract_interface(table_from_wire(message.get("data") or {}))
            except ValueError as e:
                logger.warning(f"Ignoring malformed contract interface: {e}")

    def load_contract_interface(self, table: FunctionTable) -> None:
        state = self.store.get_state()
        state.function_selectors = dict(table)
        state.selected_function = None
        self.store.set_state(state)

        self.options = [sel.fn_sig for sel in table.values()]
        self.selected = None
        self.inputs = []

    def select_function(self, fn_sig: str) -> FunctionSelector | None:
        """
        Select the first function whose signature is `fn_sig`.

        Renders one input per argument, prefilled with the last value typed for
        that function and argument, else the argument placeholder.
        """
        if not fn_sig:
            return None
        state = self.store.get_state()
        match = next((sel for sel in state.function_selectors.values() if sel.fn_sig == fn_sig), None)
        if match is None:
            logger.debug(f"No function with signature {fn_sig}")
            return None

        self.selected = match
        state.selected_function = match
        self.store.set_state(state)

        saved = state.args_values.get(match.fn_id, {})
        self.inputs = [ArgumentInput(name=arg, value=saved.get(i, arg)) for i, arg in enumerate(match.args)]
        return match

    def edit_argument(self, index: int, value: str) -> None:
        if self.selected is None:
            raise RuntimeError("No function selected")
        self.inputs[index].value = value

        state = self.store.get_state()
        state.args_values.setdefault(self.selected.fn_id, {})[index] = value
        self.store.set_state(state)

    def prepare_debug_session(self) -> dict[str, Any]:
        """Send the selected function and its current arguments to the host."""
        if self.selected is None:
            raise RuntimeError("No function selected")
        message = {
            "type": "start-debug",
            "values": {
                "selectedFunction": [self.selected.fn_id, self.selected.to_wire()],
                "argsArr": [[inp.name, inp.value] for inp in self.inputs],
            },
        }
        self.post_message(message)
        return message
