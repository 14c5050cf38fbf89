"""
Writing of generated configuration files
"""
import os
from .backup import backup_config_file
from .utils import log


def write_config(config, key, content, mode=None):
    """
    Back up and fully overwrite the file configured under key.
    Returns the path written.
    """
    path = config[key]
    backup_config_file(config, path)

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(path, 'w') as f:
        f.write(content)

    if mode is not None:
        os.chmod(path, mode)

    log(f"Wrote {path}")
    return path


def render_lines(lines):
    """Join template lines into a file body with a trailing newline."""
    return "\n".join(lines) + "\n"
