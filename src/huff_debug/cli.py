import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.prompt import Prompt

from huff_debug import installation, pipeline, process, store
from huff_debug.abi import abi_file_extractor
from huff_debug.config import DebugConfig, load_config, load_config_file
from huff_debug.constants import CACHE_DIRNAME, DEFAULT_HOST, DEFAULT_PORT
from huff_debug.errors import HuffDebugError
from huff_debug.router import MessageRouter
from huff_debug.session import DebugSession
from huff_debug.webview import FunctionPanel, WebviewStateStore

logger = logging.getLogger(__name__)

console = Console()

PANEL_STATE_FILENAME = "panel_state.json"


def resolve_config(args) -> DebugConfig:
    raw: dict[str, Any] = {}
    if getattr(args, "config", None):
        raw.update(load_config_file(args.config).to_dict())
    if getattr(args, "state", False):
        raw["state_checked"] = True
    if getattr(args, "storage", False):
        raw["storage_checked"] = True
    if getattr(args, "contract_address", None):
        raw["contract_address"] = args.contract_address
    if getattr(args, "caller", None):
        raw["caller"] = args.caller
    return load_config(raw)


def _relative_source(root: Path, file: Path) -> str:
    path = file if file.is_absolute() else (Path.cwd() / file)
    try:
        return str(path.resolve().relative_to(root.resolve()))
    except ValueError:
        return str(path.resolve())


def cmd_compile(args) -> None:
    bytecode = pipeline.compile_contract(args.root, _relative_source(args.root, args.file))
    console.print(bytecode, soft_wrap=True, highlight=False)


def cmd_deploy(args) -> None:
    config = resolve_config(args)
    bytecode = pipeline.compile_contract(args.root, _relative_source(args.root, args.file))
    runtime = pipeline.deploy_contract(bytecode, config, args.root)
    console.print(runtime, soft_wrap=True, highlight=False)


def cmd_reset_state(args) -> None:
    config = resolve_config(args)
    path = store.reset_state_repository(config.state_path, args.root)
    console.print(f"[green]State repository reset:[/green] {path}")


def cmd_purge_cache(args) -> None:
    if store.purge_cache(args.root):
        console.print(f"[green]Removed[/green] {args.root / CACHE_DIRNAME}")
    else:
        console.print("[dim]Cache didn't exist[/dim]")


def cmd_doctor(args) -> None:
    if not installation.doctor():
        sys.exit(1)


def _prompt_arguments(panel: FunctionPanel) -> None:
    for i, inp in enumerate(panel.inputs):
        value = Prompt.ask(f"  [cyan]{inp.name}[/cyan] (arg {i + 1})", default=inp.value, console=console)
        if value != inp.value:
            panel.edit_argument(i, value)


async def run_terminal_panel(args, config: DebugConfig) -> dict[str, Any]:
    """
    Drive a `FunctionPanel` from the terminal against an in-process router.

    Returns:
        The router's final message (`debugStarted` or `error`).
    """
    filename = _relative_source(args.root, args.file)
    launcher = None if args.no_launch else process.run_in_terminal
    session = DebugSession(args.root, filename, config, launcher=launcher)

    outbox: list[dict[str, Any]] = []
    result: dict[str, Any] = {}
    panel = FunctionPanel(WebviewStateStore(args.root / CACHE_DIRNAME / PANEL_STATE_FILENAME), outbox.append)

    async def to_panel(message: dict[str, Any]) -> None:
        if message["type"] == "receiveContractInterface":
            panel.receive(message)
        else:
            result.update(message)

    router = MessageRouter(
        extractor=abi_file_extractor(args.abi),
        session=session,
        read_document=lambda: (args.root / filename).read_text(encoding="utf-8"),
        post_message=to_panel,
    )

    async def flush() -> None:
        while outbox:
            await router.handle(outbox.pop(0))

    store.ensure_cache_dir(args.root)
    panel.restore()
    panel.request_interface()
    await flush()
    if result.get("type") == "error":
        return result
    if not panel.options:
        return {"type": "error", "data": {"message": "No functions found in the contract interface"}}

    fn_sig = args.function
    if fn_sig is None:
        default = panel.selected.fn_sig if panel.selected else panel.options[0]
        fn_sig = Prompt.ask("Function", choices=panel.options, default=default, console=console)
    if panel.select_function(fn_sig) is None:
        return {"type": "error", "data": {"message": f"Unknown function {fn_sig}"}}

    if args.arg:
        if len(args.arg) != len(panel.inputs):
            return {
                "type": "error",
                "data": {"message": f"{fn_sig} takes {len(panel.inputs)} argument(s), got {len(args.arg)}"},
            }
        for i, value in enumerate(args.arg):
            panel.edit_argument(i, value)
    elif panel.inputs:
        _prompt_arguments(panel)

    panel.prepare_debug_session()
    await flush()
    await router.drain()
    return result


def cmd_debug(args) -> None:
    config = resolve_config(args)
    outcome = asyncio.run(run_terminal_panel(args, config))
    if outcome.get("type") == "error":
        console.print(f"[red]Error:[/red] {outcome['data']['message']}")
        sys.exit(1)
    data = outcome.get("data", {})
    if args.no_launch:
        console.print(data.get("command", ""), soft_wrap=True, highlight=False)
    else:
        console.print(f"[green]Debug session finished[/green] ({data.get('function')})")


def cmd_serve(args) -> None:
    import uvicorn

    from huff_debug.server import build_app

    config = resolve_config(args)
    app = build_app(
        workspace=args.root,
        filename=_relative_source(args.root, args.file),
        extractor=abi_file_extractor(args.abi),
        config=config,
        launcher=process.run_in_terminal if args.launch else None,
    )
    uvicorn.run(app, host=args.host, port=args.port)


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", type=Path, help="JSON config file (hevmContractAddress, stateChecked, ...)")
    p.add_argument("--state", action="store_true", help="Run against the persisted hevm state repository")
    p.add_argument("--storage", action="store_true", help="Enable storage checks (implies a state repository)")
    p.add_argument("--contract-address", type=str, help="Address the contract is deployed to")
    p.add_argument("--caller", type=str, help="Caller address")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compile, deploy and debug Huff contracts with huffc and hevm")
    parser.add_argument("--root", type=Path, default=Path.cwd(), help="Workspace root (default: cwd)")
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("compile", help="Compile a Huff file and print its bytecode")
    p.add_argument("file", type=Path)
    p.set_defaults(func=cmd_compile)

    p = subparsers.add_parser("deploy", help="Compile and deploy a Huff file, print the runtime bytecode")
    p.add_argument("file", type=Path)
    _add_config_args(p)
    p.set_defaults(func=cmd_deploy)

    p = subparsers.add_parser("debug", help="Pick a function and open the hevm debugger on it")
    p.add_argument("file", type=Path)
    p.add_argument("--abi", type=Path, required=True, help="Contract ABI JSON")
    p.add_argument("--function", type=str, help="Function signature, e.g. 'bar(uint256)' (prompted if omitted)")
    p.add_argument("--arg", action="append", help="Argument value (repeat in order; prompted if omitted)")
    p.add_argument("--no-launch", action="store_true", help="Print the hevm debug command instead of running it")
    _add_config_args(p)
    p.set_defaults(func=cmd_debug)

    p = subparsers.add_parser("serve", help="Serve the panel protocol over a WebSocket")
    p.add_argument("file", type=Path)
    p.add_argument("--abi", type=Path, required=True, help="Contract ABI JSON")
    p.add_argument("--host", type=str, default=DEFAULT_HOST)
    p.add_argument("--port", type=int, default=DEFAULT_PORT)
    p.add_argument("--launch", action="store_true", help="Run the hevm debugger in this terminal")
    _add_config_args(p)
    p.set_defaults(func=cmd_serve)

    p = subparsers.add_parser("reset-state", help="Recreate the hevm state repository")
    _add_config_args(p)
    p.set_defaults(func=cmd_reset_state)

    p = subparsers.add_parser("purge-cache", help="Delete the cache directory")
    p.set_defaults(func=cmd_purge_cache)

    p = subparsers.add_parser("doctor", help="Check that huffc and hevm are installed")
    p.set_defaults(func=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        args.func(args)
    except HuffDebugError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        logger.debug(json.dumps(e.to_dict()))
        sys.exit(1)
    except (ValueError, OSError) as e:
        console.print(f"[red]Error:[/red] {type(e).__name__}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
