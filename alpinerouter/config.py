"""
Configuration handling for Alpine Router Setup
"""
import os
from datetime import datetime
from configparser import ConfigParser, Error as ConfigParserError
from .errors import ConfigError
from .utils import log, warn_continue

CONFIG_SECTION = 'router-setup'

DEFAULT_CONFIG = {
    'WAN_IFACE': 'eth1',
    'LAN_IFACE': 'eth2',
    'LAN_IP': '10.0.0.1',
    'LAN_NETMASK': '255.255.255.0',
    'LAN_PREFIX': '24',
    'DHCP_RANGE_START': '10.0.0.10',
    'DHCP_RANGE_END': '10.0.0.100',
    'DHCP_LEASE': '12h',
    'DNS_SERVERS': '1.1.1.1,8.8.8.8',
    'NTP_POOL': 'pool.ntp.org',
    'SSH_PORT': '22',
    'MAX_BACKUPS': '5',
    'CONFIG_DIR': '/etc/router-setup',
    'MARKER_FILE': '/etc/router-setup/last-run',
    'RUNTIME_CONFIG': '/etc/router-setup/config',
    'APK_REPOSITORIES': '/etc/apk/repositories',
    'INTERFACES_CONF': '/etc/network/interfaces',
    'DNSMASQ_CONF': '/etc/dnsmasq.conf',
    'SYSCTL_CONF': '/etc/sysctl.conf',
    'IPTABLES_RULES': '/etc/iptables/rules',
    'IPTABLES_INIT': '/etc/init.d/iptables-load',
    'CHRONY_CONF': '/etc/chrony/chrony.conf',
    'FAIL2BAN_JAIL': '/etc/fail2ban/jail.local',
    'FAIL2BAN_FILTER': '/etc/fail2ban/filter.d/wan-access.conf',
    'LOGROTATE_CONF': '/etc/logrotate.d/iptables',
    'FIREWALL_LOG': '/var/log/messages',
    'DNSMASQ_LOG': '/var/log/dnsmasq.log',
}

# Every file the setup overwrites, in the order it writes them
GENERATED_FILES = [
    'INTERFACES_CONF',
    'DNSMASQ_CONF',
    'SYSCTL_CONF',
    'IPTABLES_RULES',
    'CHRONY_CONF',
    'FAIL2BAN_JAIL',
    'FAIL2BAN_FILTER',
    'LOGROTATE_CONF',
    'IPTABLES_INIT',
]


def load_config(config_path=None):
    """
    Load configuration from file.
    Returns a dictionary with the defaults overridden by the file's values.
    """
    config = dict(DEFAULT_CONFIG)

    if not config_path:
        return config

    log(f"Loading configuration from {config_path}")

    # Check if config_path is a shell-style config or an INI file
    if os.path.exists(config_path):
        if config_path.endswith('.conf'):
            # Shell-style config (key=value)
            with open(config_path, 'r') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#'):
                        if '=' in line:
                            key, value = line.split('=', 1)
                            key = key.strip()
                            value = value.strip().strip('"')
                            if key in config:
                                config[key] = value
        else:
            try:
                parser = ConfigParser()
                parser.read(config_path)
                if CONFIG_SECTION in parser:
                    section = parser[CONFIG_SECTION]
                    for key in config:
                        if key.lower() in section:
                            config[key] = section[key.lower()]
            except ConfigParserError as e:
                warn_continue(f"Failed to parse config file as INI: {e}")
    else:
        warn_continue(f"Configuration file not found: {config_path}")

    return config


def get_int(config, key, minimum=None):
    """Read a numeric setting, failing loudly on garbage."""
    try:
        value = int(config[key])
    except (KeyError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {config.get(key)!r}")
    if minimum is not None and value < minimum:
        raise ConfigError(f"{key} must be at least {minimum}, got {value}")
    return value


def get_list(config, key):
    """Split a comma separated setting into its non-empty items."""
    return [item.strip() for item in config.get(key, '').split(',') if item.strip()]


def lan_network(config):
    """Return the LAN network in CIDR notation, e.g. 10.0.0.0/24."""
    return f"{config['LAN_IP'].rsplit('.', 1)[0]}.0/{config['LAN_PREFIX']}"


def save_runtime_config(config, filepath):
    """Save runtime configuration to a file."""
    log(f"Saving configuration to {filepath}")

    # Create directory if it doesn't exist
    os.makedirs(os.path.dirname(filepath), exist_ok=True)

    with open(filepath, 'w') as f:
        f.write("# Alpine Router Setup Configuration\n")
        f.write(f"# Generated on {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        for key, value in config.items():
            f.write(f"{key}=\"{value}\"\n")
