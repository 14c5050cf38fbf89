"""
Network configuration for Alpine Router Setup
"""
from .files import write_config, render_lines
from .utils import log, run_checked

SYSCTL_HARDENING = [
    ('net.ipv4.conf.all.rp_filter', '1'),
    ('net.ipv4.conf.default.rp_filter', '1'),
    ('net.ipv4.conf.all.accept_redirects', '0'),
    ('net.ipv4.conf.default.accept_redirects', '0'),
    ('net.ipv4.conf.all.send_redirects', '0'),
    ('net.ipv4.conf.all.accept_source_route', '0'),
    ('net.ipv4.conf.all.log_martians', '1'),
    ('net.ipv4.icmp_echo_ignore_broadcasts', '1'),
    ('net.ipv4.icmp_ignore_bogus_error_responses', '1'),
    ('net.ipv4.tcp_syncookies', '1'),
]


def render_interfaces(config):
    """WAN on DHCP, LAN with the router's static address."""
    return render_lines([
        "auto lo",
        "iface lo inet loopback",
        "",
        f"auto {config['WAN_IFACE']}",
        f"iface {config['WAN_IFACE']} inet dhcp",
        "",
        f"auto {config['LAN_IFACE']}",
        f"iface {config['LAN_IFACE']} inet static",
        f"    address {config['LAN_IP']}",
        f"    netmask {config['LAN_NETMASK']}",
    ])


def render_sysctl(config):
    lines = [
        "# Generated by Alpine Router Setup",
        "net.ipv4.ip_forward=1",
        "",
        "# Hardening",
    ]
    lines.extend(f"{key}={value}" for key, value in SYSCTL_HARDENING)
    return render_lines(lines)


def setup_interfaces(config):
    """Write /etc/network/interfaces and restart networking."""
    log("Configuring network interfaces...")
    write_config(config, 'INTERFACES_CONF', render_interfaces(config))

    log("Restarting networking...")
    run_checked("/etc/init.d/networking restart")


def setup_routing(config):
    """Enable IP forwarding and kernel hardening persistently."""
    log("Setting up routing...")
    write_config(config, 'SYSCTL_CONF', render_sysctl(config))
    run_checked(f"sysctl -p {config['SYSCTL_CONF']}")
