"""
Reusable logging and print setup for the argolink tools.

Functions:
    setup_logging      - Configure and return a logger.
    set_print_logger   - Set the logger for print_and_log, print_warning and print_error.
    monkeypatch_print  - Replace built-in print with rich print.
    print_and_log      - Print and log an info message.
    print_warning      - Print and log a warning message.
    print_error        - Print and log an error message.
"""

import logging
import os
from typing import Optional
import builtins
from rich import print as rich_print
from rich.console import Console
from rich.markup import escape
import sys

# Module-level variable to hold the logger for the print helpers
_print_logger = None

# Links and JSON must reach the operator unwrapped, whatever the terminal width
_console = Console(soft_wrap=True, emoji=False, highlight=False)
_err_console = Console(soft_wrap=True, emoji=False, highlight=False, stderr=True)

def setup_logging(app_name: str = "argolink", loglevel: int = logging.INFO, logfile: Optional[str] = None) -> logging.Logger:
    """
    Set up logging for the application.
    Logs to a file in ~/.<app_name>/log.txt or to a custom logfile.
    Returns the configured logger.
    """
    logger = logging.getLogger()
    logger.setLevel(loglevel)
    formatter = logging.Formatter(f'%(asctime)s %(levelname)s %(process)d [{app_name}] %(name)s %(message)s')
    if logfile is None:
        log_dir = os.path.expanduser(f"~/.{app_name}")
        os.makedirs(log_dir, exist_ok=True)
        logfile = os.path.join(log_dir, "log.txt")
    handler = logging.FileHandler(logfile)

    # Remove any existing handlers
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    set_print_logger(logger)
    logger.debug("Logger initialized for %s, writing to %s", app_name, logfile)
    return logger

def set_print_logger(logger: logging.Logger):
    """
    Set the logger to be used by print_and_log, print_warning and print_error.
    Call this after setting up logging in your app.
    """
    global _print_logger
    _print_logger = logger

def monkeypatch_print():
    """
    Monkeypatch built-in print to use rich.print for all output (no logging).
    """
    def print_to_rich(*args, file=None, flush=False, **kwargs):
        if file is None or file is sys.stdout:
            _console.print(*args, **kwargs)
        elif file is sys.stderr:
            _err_console.print(*args, **kwargs)
        else:
            rich_print(*args, file=file, **kwargs)
    builtins.print = print_to_rich  # monkeypatch print


def print_and_log(message: str, **kwargs):
    """
    Print to console (via print) and log as info.
    Square brackets in the message are escaped so JSON and URIs print verbatim.
    """
    print(escape(message), **kwargs)
    if _print_logger is not None:
        _print_logger.info(message)

def print_warning(message: str, **kwargs):
    """
    Print and log a warning message (stdout and warning level).
    """
    print(f'[bold yellow]{escape(message)}[/bold yellow]', **kwargs)
    if _print_logger is not None:
        _print_logger.warning(message)

def print_error(message: str, **kwargs):
    """
    Print and log an error message (stderr and error level), using the logger set by set_print_logger.
    """
    print(f'[bold red]{escape(message)}[/bold red]', file=sys.stderr, **kwargs)
    if _print_logger is not None:
        _print_logger.error(message)
