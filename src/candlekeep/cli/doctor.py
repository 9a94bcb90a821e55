"""``ck doctor`` — environment diagnostics command.

Gathers system information and renders a Rich table summarising
whether the runtime environment and local configuration are usable.

This module lives in the CLI layer — it may import from ``infra``
and ``core``, and it renders via Rich.  No business logic resides
here; it purely collects and displays diagnostic data.  It never
contacts the service.
"""

from __future__ import annotations

import importlib
import importlib.metadata
import platform
import sys

from candlekeep.cli import exit_codes
from candlekeep.cli.console import console, emit_json, escape
from candlekeep.exceptions import ConfigError
from candlekeep.infra.config_store import ConfigStore, default_config_path
from candlekeep.version import __version__

Check = tuple[str, str, str]

OK = "OK"
WARN = "WARN"
FAIL = "FAIL"

_STATUS_MARKUP: dict[str, str] = {
    OK: "[green]OK[/green]",
    WARN: "[yellow]WARN[/yellow]",
    FAIL: "[red]FAIL[/red]",
}


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> Check:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 11)
    return "Python", version, OK if ok else FAIL


def _library_check(label: str, module_name: str, *, required: bool = True) -> Check:
    """Return (label, value, status) for an installed library."""
    try:
        importlib.import_module(module_name)
    except ImportError:
        return label, "NOT INSTALLED", FAIL if required else WARN
    try:
        version = importlib.metadata.version(label)
    except importlib.metadata.PackageNotFoundError:
        version = "unknown"
    return label, version, OK


def _config_checks() -> list[Check]:
    """Return the config file, API URL and authentication rows."""
    try:
        store = ConfigStore()
    except ConfigError as exc:
        return [("Config", f"{default_config_path()} ({exc})", FAIL)]

    config = store.snapshot()
    exists = config.path.exists()
    return [
        ("Config", str(config.path) if exists else f"{config.path} (not created)", OK),
        ("API URL", config.api_url, OK),
        ("Auth", "logged in" if config.api_key else "not logged in", OK if config.api_key else WARN),
    ]


def _os_check() -> Check:
    """Return (label, value, status) for the OS row."""
    system_raw = platform.system()
    system_display = {
        "Windows": "Windows",
        "Linux": "Linux",
        "Darwin": "macOS",
    }.get(system_raw, system_raw)
    value = f"{system_display} {platform.release()} ({platform.machine()})"
    return "OS", value, OK


def collect_checks() -> list[Check]:
    """Run every diagnostic and return the rows in display order."""
    return [
        ("ck", __version__, OK),
        _python_version_check(),
        _library_check("httpx", "httpx"),
        _library_check("rich", "rich", required=False),
        _library_check("questionary", "questionary", required=False),
        *_config_checks(),
        _os_check(),
    ]


def _print_plain_doctor_table(checks: list[Check]) -> None:
    """Render doctor output without Rich."""
    print("\nck doctor", file=sys.stderr)
    print("=" * 64, file=sys.stderr)
    print(f"{'Component':<12} {'Value':<42} {'Status':<8}", file=sys.stderr)
    print("-" * 64, file=sys.stderr)
    for label, value, status in checks:
        print(f"{label:<12} {value:<42} {status:<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(*, json_output: bool = False) -> int:
    """Execute all diagnostic checks and render a summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when all critical checks pass,
        :data:`exit_codes.GENERAL_ERROR` if a critical check fails.
    """
    checks = collect_checks()
    has_failure = any(status == FAIL for _, _, status in checks)

    if json_output:
        emit_json({
            "ok": not has_failure,
            "checks": [
                {"component": label, "value": value, "status": status}
                for label, value, status in checks
            ],
        })
        return exit_codes.GENERAL_ERROR if has_failure else exit_codes.SUCCESS

    try:
        from rich.table import Table
    except ModuleNotFoundError:
        _print_plain_doctor_table(checks)
        print("Some checks failed." if has_failure else "All checks passed.", file=sys.stderr)
        return exit_codes.GENERAL_ERROR if has_failure else exit_codes.SUCCESS

    table = Table(
        title="ck doctor",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Component", style="bold", min_width=12)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=8)
    for label, value, status in checks:
        table.add_row(label, escape(value), _STATUS_MARKUP[status])

    console.print()
    console.print(table)
    console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR
    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
