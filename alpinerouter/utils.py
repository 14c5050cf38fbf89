"""
Utility functions for Alpine Router Setup
"""
import os
import sys
import time
import subprocess
import shutil

from .errors import CommandError


def _timestamp():
    return time.strftime('%Y-%m-%d %H:%M:%S')


def log(message):
    """Print a formatted log message."""
    print(f"{_timestamp()} [INFO] {message}")


def warn_continue(message):
    """Print a warning message but continue execution."""
    print(f"{_timestamp()} [WARNING] {message}")


def error_exit(message):
    """Print an error message and exit."""
    print(f"{_timestamp()} [ERROR] {message}")
    sys.exit(1)


def ensure_root():
    """Check if running as root."""
    if os.geteuid() != 0:
        error_exit("This script must be run as root. Use 'sudo'.")


def run_command(command, shell=True, check=False, silent=False):
    """Run a shell command and return the result."""
    try:
        result = subprocess.run(
            command,
            shell=shell,
            check=check,
            stdout=subprocess.PIPE if silent else None,
            stderr=subprocess.PIPE if silent else None,
            text=True
        )
        return result
    except subprocess.CalledProcessError as e:
        if check:
            warn_continue(f"Command failed: {command}")
        return e


def run_checked(command, silent=False):
    """
    Run a command and raise CommandError when it exits non-zero.
    Returns the completed process so callers can read captured output.
    """
    result = run_command(command, silent=silent)
    if result.returncode != 0:
        warn_continue(f"Command failed ({result.returncode}): {command}")
        raise CommandError(command, result.returncode)
    return result


def command_exists(command):
    """Check if a command exists."""
    return shutil.which(command) is not None


def display_banner():
    """Display the application banner."""
    print("==================================================")
    print("           Alpine Linux NAT Router Setup          ")
    print("==================================================")
    print("")
