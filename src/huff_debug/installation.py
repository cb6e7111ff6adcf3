"""
huff-debug doctor - check that the external tools are installed.

Usage:
    huff-debug doctor
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Callable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from huff_debug.constants import COMPILER_BIN, COMPILER_INSTALL_URL, ENGINE_BIN, ENGINE_INSTALL_URL
from huff_debug.errors import ToolMissingError

logger = logging.getLogger(__name__)

console = Console()

# (binary, human name, install pointer)
REQUIRED_TOOLS: tuple[tuple[str, str, str], ...] = (
    (ENGINE_BIN, "Hevm", ENGINE_INSTALL_URL),
    (COMPILER_BIN, "Huffc compiler", COMPILER_INSTALL_URL),
)

Reporter = Callable[[str], None]


def _log_report(message: str) -> None:
    logger.error(message)


def missing_tool_message(name: str, install_url: str) -> str:
    return f"{name} installation required - install here: {install_url}"


def check_tool_installed(name: str) -> bool:
    """True if `name` resolves to an executable on PATH."""
    return shutil.which(name) is not None


def _check_tool(binary: str, name: str, install_url: str, report: Reporter) -> bool:
    if check_tool_installed(binary):
        return True
    report(missing_tool_message(name, install_url))
    return False


def check_hevm_installation(report: Reporter = _log_report) -> bool:
    binary, name, url = REQUIRED_TOOLS[0]
    return _check_tool(binary, name, url, report)


def check_huffc_installation(report: Reporter = _log_report) -> bool:
    binary, name, url = REQUIRED_TOOLS[1]
    return _check_tool(binary, name, url, report)


def check_all_installations(report: Reporter = _log_report) -> bool:
    """
    Check every required tool.

    Each check always runs, so every missing tool gets its own diagnostic
    through `report`.

    Returns:
        True only if all tools are present.
    """
    results = [
        check_hevm_installation(report),
        check_huffc_installation(report),
    ]
    return all(results)


def missing_tools() -> list[str]:
    return [binary for binary, _, _ in REQUIRED_TOOLS if not check_tool_installed(binary)]


def require_installations() -> None:
    """
    Raises:
        ToolMissingError: If any required tool is missing.
    """
    missing = missing_tools()
    if missing:
        raise ToolMissingError(missing)


# ---------------------------------------------------------------------------
# Doctor report
# ---------------------------------------------------------------------------


def _tool_version(binary: str) -> str | None:
    try:
        result = subprocess.run(
            [binary, "--version"],
            check=False,
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        return None
    if result.returncode != 0:
        return None
    out = result.stdout.strip() or result.stderr.strip()
    return out.split("\n")[0] if out else None


def run_checks() -> list[tuple[str, bool, str, str | None]]:
    """
    Run all environment checks.

    Returns:
        List of (check_name, passed, message, fix_hint)
    """
    results: list[tuple[str, bool, str, str | None]] = []
    for binary, name, url in REQUIRED_TOOLS:
        path = shutil.which(binary)
        if path is None:
            results.append((name, False, f"{binary} not found in PATH", url))
            continue
        version = _tool_version(binary)
        detail = f"{path} ({version})" if version else path
        results.append((name, True, f"{binary} found: {detail}", None))
    return results


def print_results(results: list[tuple[str, bool, str, str | None]]) -> bool:
    """Print check results and return overall status."""
    table = Table(title="huff-debug Environment Check", show_header=True)
    table.add_column("Check", style="cyan", width=16)
    table.add_column("Status", width=6)
    table.add_column("Details", style="dim")

    all_passed = True
    fixes: list[tuple[str, str]] = []

    for name, passed, message, fix in results:
        status = "[green]✓[/green]" if passed else "[red]✗[/red]"
        table.add_row(name, status, message)
        if not passed:
            all_passed = False
            if fix:
                fixes.append((name, fix))

    console.print(table)

    if fixes:
        console.print()
        console.print(
            Panel.fit(
                "\n".join([f"[bold]{name}:[/bold] {hint}" for name, hint in fixes]),
                title="[yellow]Install Instructions[/yellow]",
                border_style="yellow",
            )
        )

    return all_passed


def doctor() -> bool:
    console.print("[bold blue]huff-debug doctor[/bold blue]")
    console.print()
    all_passed = print_results(run_checks())
    console.print()
    if all_passed:
        console.print("[bold green]✓ All checks passed! Environment is ready.[/bold green]")
    else:
        console.print("[bold red]✗ Some checks failed. See install instructions above.[/bold red]")
    return all_passed
