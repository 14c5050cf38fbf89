"""
Backup and restore functionality for Alpine Router Setup

Every config file is copied to <path>.bak-<YYYYMMDDHHMMSS> before it is
overwritten, and only the newest MAX_BACKUPS copies per file are kept.
"""
import os
import glob
import shutil
from datetime import datetime
from .config import GENERATED_FILES, get_int
from .errors import BackupError
from .utils import log, warn_continue

BACKUP_SUFFIX = '.bak-'
DEFAULT_MAX_BACKUPS = 5


def backup_path_for(path, now=None):
    """Return the timestamped backup name for path."""
    now = now or datetime.now()
    return f"{path}{BACKUP_SUFFIX}{now.strftime('%Y%m%d%H%M%S')}"


def list_backups(path):
    """List existing backups of path, newest first by modification time."""
    pattern = glob.escape(path) + BACKUP_SUFFIX + '[0-9]' * 14
    backups = [p for p in glob.glob(pattern) if os.path.isfile(p)]
    return sorted(backups, key=os.path.getmtime, reverse=True)


def prune_backups(path, max_backups=DEFAULT_MAX_BACKUPS):
    """
    Delete the oldest backups of path beyond max_backups.
    Failures are reported and ignored: losing an old backup is not fatal.
    Returns the list of removed backups.
    """
    removed = []
    try:
        stale = list_backups(path)[max_backups:]
    except OSError as e:
        warn_continue(f"Could not list backups of {path}: {e}")
        return removed

    for old in stale:
        try:
            os.remove(old)
            removed.append(old)
        except OSError as e:
            warn_continue(f"Could not remove old backup {old}: {e}")
    return removed


def backup_file(path, max_backups=DEFAULT_MAX_BACKUPS):
    """
    Copy path to a timestamped backup and enforce retention.
    Returns the backup path, or None if there was nothing to back up.
    """
    if not os.path.isfile(path):
        return None

    destination = backup_path_for(path)
    try:
        # copy, not copy2: the backup's mtime must be the time it was taken
        shutil.copy(path, destination)
    except OSError as e:
        raise BackupError(f"Failed to back up {path} to {destination}: {e}")

    log(f"Backed up {path} to {destination}")
    prune_backups(path, max_backups)
    return destination


def backup_config_file(config, path):
    """Back up path using the retention configured in MAX_BACKUPS."""
    return backup_file(path, get_int(config, 'MAX_BACKUPS', minimum=0))


def restore_latest(path):
    """Put the newest backup of path back in place. Returns the backup used."""
    backups = list_backups(path)
    if not backups:
        return None

    latest = backups[0]
    try:
        shutil.copy(latest, path)
    except OSError as e:
        raise BackupError(f"Failed to restore {path} from {latest}: {e}")
    return latest


def restore_settings(config):
    """Restore every generated file from its newest backup."""
    log("Restoring configuration files from backups...")

    restored = []
    for key in GENERATED_FILES:
        path = config[key]
        latest = restore_latest(path)
        if latest:
            log(f"Restored {path} from {latest}")
            restored.append(path)
        else:
            warn_continue(f"No backup found for {path}")

    log(f"Restored {len(restored)} of {len(GENERATED_FILES)} files.")
    return restored
