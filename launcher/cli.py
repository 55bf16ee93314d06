"""
This file is the entry point for the 'argolink' command-line tool.
Run 'argolink' in your shell to use the CLI.

Bootstraps a sing-box VLESS server behind a Cloudflare quick tunnel and
prints the connection link. The processes keep running after the command
exits; 'status' and 'stop' find them again with psutil, no PID file needed.
"""

import asyncio
import json
import logging
import os
import signal
import time
from pathlib import Path
from typing import Optional

import typer

from bootstrap import Bootstrapper, BootstrapError, DiscoveryTimeout, load_settings
from bootstrap.config_synth import render_config, synthesize_config
from bootstrap.discovery import TRYCLOUDFLARE_PATTERN
from bootstrap.link import build_link
from bootstrap.settings import BootstrapSettings
from bootstrap.supervisor import find_processes, is_alive
from common.app_setup import (
    monkeypatch_print,
    print_and_log,
    print_error,
    print_warning,
    setup_logging,
)

app = typer.Typer(add_completion=False, help="Bootstrap a VLESS proxy behind a Cloudflare quick tunnel. If no command is given, status is shown.")

SettingsOption = typer.Option(None, "--settings", help="YAML or JSON file with settings")
WorkDirOption = typer.Option(None, "--work-dir", help="Directory for binaries, config and tunnel log (default ./tmp)")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_file: Optional[Path] = typer.Option(None, help="Log file (default ~/.argolink/log.txt)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages"),
):
    setup_logging(app_name="argolink", loglevel=logging.DEBUG if verbose else logging.INFO, logfile=str(log_file) if log_file else None)
    if ctx.invoked_subcommand is None:
        ctx.invoke(status, settings_file=None, work_dir=None)


@app.command()
def run(
    settings_file: Optional[Path] = SettingsOption,
    work_dir: Optional[Path] = WorkDirOption,
    port: Optional[int] = typer.Option(None, help="Local port sing-box listens on (default 8080)"),
    attempts: Optional[int] = typer.Option(None, help="Times the tunnel log is checked for a hostname"),
    interval: Optional[float] = typer.Option(None, help="Seconds between two checks"),
    strict: bool = typer.Option(False, help="Exit with an error if no hostname is found"),
):
    """Download, configure and start sing-box and cloudflared, then print the VLESS link."""
    settings = _load(
        settings_file,
        work_dir=work_dir,
        listen_port=port,
        discovery_attempts=attempts,
        discovery_interval=interval,
    )
    try:
        outcome = asyncio.run(Bootstrapper(settings).run())
    except BootstrapError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except OSError as e:
        print_error(f"Failed to start processes: {e}")
        raise typer.Exit(1)

    if outcome.link is None:
        if strict:
            print_error(str(DiscoveryTimeout(outcome.log_file, outcome.discovery.attempts)))
            raise typer.Exit(1)
        print_warning(f"Hostname not found, check {outcome.log_file}")
        return
    print_and_log(f"Hostname found: {outcome.discovery.hostname}")
    print_and_log("VLESS link:")
    print_and_log(outcome.link.uri)


@app.command()
def config(
    settings_file: Optional[Path] = SettingsOption,
    port: Optional[int] = typer.Option(None, help="Local port sing-box listens on"),
):
    """Print the sing-box configuration a run would write."""
    settings = _load(settings_file, listen_port=port)
    print_and_log(render_config(synthesize_config(settings.credential, settings.listen_port, settings.transport_path)))


@app.command()
def link(
    host: str = typer.Argument(..., help="Public hostname of the tunnel"),
    settings_file: Optional[Path] = SettingsOption,
):
    """Print the VLESS link for an already known tunnel hostname."""
    settings = _load(settings_file)
    try:
        uri = build_link(
            settings.credential,
            host,
            path=settings.transport_path,
            port=settings.public_port,
            label=settings.link_label,
        ).uri
    except ValueError as e:
        print_error(f"Invalid host {host!r}: {e}")
        raise typer.Exit(1)
    print_and_log(uri)


@app.command()
def status(
    settings_file: Optional[Path] = SettingsOption,
    work_dir: Optional[Path] = WorkDirOption,
):
    """Show the running sing-box and cloudflared processes and the last known hostname."""
    settings = _load(settings_file, work_dir=work_dir)
    pids = find_processes(settings.work_dir)
    running = all(pids.values())
    result = {
        "returncode": 0 if running else 1,
        "msg": "Running." if running else ("Not running." if not any(pids.values()) else "Partially running."),
        "running": running,
        "pids": pids,
        "hostname": _last_hostname(settings),
    }
    print_and_log(json.dumps(result))


@app.command()
def stop(
    settings_file: Optional[Path] = SettingsOption,
    work_dir: Optional[Path] = WorkDirOption,
    grace: float = typer.Option(2.0, help="Seconds to wait after SIGTERM before SIGKILL"),
):
    """Stop the sing-box and cloudflared processes of the work directory."""
    settings = _load(settings_file, work_dir=work_dir)
    pids = [pid for found in find_processes(settings.work_dir).values() for pid in found]
    if not pids:
        print_and_log(json.dumps({"returncode": 1, "msg": "Not running.", "stopped": []}))
        raise typer.Exit(1)
    for pid in pids:
        _signal(pid, signal.SIGTERM)
    deadline = time.monotonic() + grace
    while time.monotonic() < deadline and any(is_alive(pid) for pid in pids):
        time.sleep(0.1)
    killed = [pid for pid in pids if is_alive(pid)]
    for pid in killed:
        _signal(pid, signal.SIGKILL)
    result = {
        "returncode": 0,
        "msg": f"Stopped {len(pids)} process(es)" + (f", {len(killed)} via SIGKILL" if killed else " via SIGTERM"),
        "stopped": pids,
    }
    print_and_log(json.dumps(result))


@app.command()
def show_logs(
    settings_file: Optional[Path] = SettingsOption,
    work_dir: Optional[Path] = WorkDirOption,
):
    """Print the tunnel client log."""
    settings = _load(settings_file, work_dir=work_dir)
    try:
        text = settings.log_path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        print_error(f"No tunnel log at {settings.log_path}")
        raise typer.Exit(1)
    print(text, end="", markup=False)


def _load(settings_file: Optional[Path], **overrides) -> BootstrapSettings:
    try:
        return load_settings(settings_file=settings_file, **overrides)
    except (ValueError, OSError) as e:
        print_error(f"Cannot load settings: {e}")
        raise typer.Exit(2)


def _last_hostname(settings: BootstrapSettings) -> Optional[str]:
    # The log is appended to by every run, the newest hostname comes last
    try:
        text = settings.log_path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return None
    hostnames = TRYCLOUDFLARE_PATTERN.findall(text)
    return hostnames[-1] if hostnames else None


def _signal(pid: int, sig: int) -> None:
    try:
        os.kill(pid, sig)
    except ProcessLookupError:
        pass


monkeypatch_print()

if __name__ == "__main__":
    app()
