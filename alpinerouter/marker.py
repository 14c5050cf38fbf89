"""
Last-run marker and rerun confirmation
"""
import os
from datetime import datetime
from .errors import MarkerError
from .utils import log, warn_continue

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def read_last_run(marker_file):
    """Return the timestamp stored in the marker, or None on a first run."""
    if not os.path.exists(marker_file):
        return None
    try:
        with open(marker_file, 'r', encoding='utf-8') as f:
            return f.read().strip()
    except (OSError, UnicodeDecodeError) as e:
        raise MarkerError(f"Cannot read last-run marker {marker_file}: {e}")


def write_last_run(marker_file, now=None):
    """Record a successful run."""
    now = now or datetime.now()
    stamp = now.strftime(TIMESTAMP_FORMAT)
    try:
        os.makedirs(os.path.dirname(marker_file), exist_ok=True)
        with open(marker_file, 'w', encoding='utf-8') as f:
            f.write(f"{stamp}\n")
    except OSError as e:
        raise MarkerError(f"Cannot write last-run marker {marker_file}: {e}")
    return stamp


def confirm_rerun(last_run, prompt=input):
    """
    Ask the operator whether to reconfigure a router set up at last_run.
    Only 'y' or 'Y' counts as yes. Blocks until an answer is given;
    end of input counts as no.
    """
    warn_continue(f"Router setup already completed on {last_run or 'an unknown date'}.")
    try:
        response = prompt("Run the setup again and overwrite the current configuration? (y/n): ").strip()
    except EOFError:
        return False
    return response in ('y', 'Y')


def check_rerun(config, prompt=input):
    """Return True when the setup may proceed."""
    last_run = read_last_run(config['MARKER_FILE'])
    if last_run is None:
        return True
    if confirm_rerun(last_run, prompt):
        log("Rerun confirmed.")
        return True
    log("Rerun declined. No changes made.")
    return False
