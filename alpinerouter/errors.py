"""
Exceptions raised by the router setup stages
"""


class RouterSetupError(Exception):
    """Base class for every fatal setup error."""


class ConfigError(RouterSetupError):
    pass


class CommandError(RouterSetupError):
    """An external command exited with a non-zero status."""

    def __init__(self, command, returncode):
        self.command = command
        self.returncode = returncode
        super().__init__(f"'{command}' exited with status {returncode}")


class DependencyError(RouterSetupError):
    pass


class BackupError(RouterSetupError):
    pass


class StageError(RouterSetupError):
    """Wraps the error that stopped a stage so the stage name is reported."""

    def __init__(self, stage, cause):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage}: {cause}")


class MarkerError(RouterSetupError):
    """The last-run marker could not be read or written."""
