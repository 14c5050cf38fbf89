"""
Package installation for Alpine Router Setup
"""
import os
from .errors import DependencyError
from .files import write_config
from .utils import log, run_command, command_exists

REQUIRED_PACKAGES = [
    'iproute2',
    'iptables',
    'dnsmasq',
    'chrony',
    'fail2ban',
    'logrotate',
]

# Command that must be on PATH -> package that provides it
REQUIRED_COMMANDS = {
    'ip': 'iproute2',
    'iptables': 'iptables',
    'iptables-save': 'iptables',
    'iptables-restore': 'iptables',
    'dnsmasq': 'dnsmasq',
    'chronyd': 'chrony',
    'fail2ban-client': 'fail2ban',
    'logrotate': 'logrotate',
    'rc-update': 'openrc',
}


def enable_repositories(config):
    """Uncomment every repository line in the apk repositories file."""
    path = config['APK_REPOSITORIES']
    if not os.path.exists(path):
        log(f"{path} not found. Skipping repository setup.")
        return False

    with open(path, 'r') as f:
        lines = f.readlines()

    enabled = [line[1:] if line.startswith('#http') else line for line in lines]
    if enabled == lines:
        log("All package repositories are already enabled.")
        return False

    log("Enabling all package repositories...")
    write_config(config, 'APK_REPOSITORIES', ''.join(enabled))
    return True


def package_installed(package):
    """Ask apk whether package is installed."""
    result = run_command(f"apk info -e {package}", silent=True)
    return result.returncode == 0


def install(packages):
    """Install packages with apk, raising DependencyError on failure."""
    if not packages:
        return
    names = ' '.join(packages)
    log(f"Installing {names}...")
    result = run_command(f"apk add --no-cache {names}")
    if result.returncode != 0:
        raise DependencyError(f"Failed to install packages: {names}")


def missing_commands():
    """Return the required commands not found on PATH."""
    return [cmd for cmd in REQUIRED_COMMANDS if not command_exists(cmd)]


def install_packages(config):
    """Install required packages and make sure every required command exists."""
    log("Installing required packages...")

    enable_repositories(config)

    # Update package repositories
    result = run_command("apk update")
    if result.returncode != 0:
        raise DependencyError("Failed to update package lists.")

    # Get Alpine version
    alpine_version = "unknown"
    if os.path.exists("/etc/alpine-release"):
        with open("/etc/alpine-release", "r") as f:
            alpine_version = f.read().strip()

    log(f"Detected Alpine Linux version: {alpine_version}")

    install([pkg for pkg in REQUIRED_PACKAGES if not package_installed(pkg)])

    missing = missing_commands()
    if missing:
        log(f"Missing commands: {', '.join(missing)}")
        packages = []
        for cmd in missing:
            if REQUIRED_COMMANDS[cmd] not in packages:
                packages.append(REQUIRED_COMMANDS[cmd])
        install(packages)

        still_missing = missing_commands()
        if still_missing:
            raise DependencyError(
                f"Required commands still missing after install: {', '.join(still_missing)}")

    log("All dependencies are installed.")
