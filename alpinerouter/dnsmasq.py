"""
DHCP and DNS configuration for Alpine Router Setup
"""
from .config import get_list
from .files import write_config, render_lines
from .utils import log, run_checked


def render_dnsmasq(config):
    """dnsmasq bound to the LAN interface, serving DHCP, DNS and the NTP option."""
    lan_iface = config['LAN_IFACE']
    lan_ip = config['LAN_IP']
    dns_servers = get_list(config, 'DNS_SERVERS')

    lines = [
        "# Generated by Alpine Router Setup",
        f"interface={lan_iface}",
        f"except-interface={config['WAN_IFACE']}",
        "bind-interfaces",
        "",
        "# DNS",
        "domain-needed",
        "bogus-priv",
        "no-resolv",
        "stop-dns-rebind",
        "cache-size=1000",
    ]
    lines.extend(f"server={server}" for server in dns_servers)
    lines.extend([
        "",
        "# DHCP",
        "dhcp-authoritative",
        f"dhcp-range={config['DHCP_RANGE_START']},{config['DHCP_RANGE_END']},{config['DHCP_LEASE']}",
        f"dhcp-option=option:router,{lan_ip}",
        f"dhcp-option=option:dns-server,{','.join(dns_servers)}",
        f"dhcp-option=option:ntp-server,{lan_ip}",
        "",
        "# Logging",
        "log-queries",
        "log-dhcp",
        f"log-facility={config['DNSMASQ_LOG']}",
    ])
    return render_lines(lines)


def setup_dnsmasq(config):
    """Write dnsmasq.conf and restart dnsmasq."""
    log("Configuring dnsmasq for DHCP and DNS...")
    write_config(config, 'DNSMASQ_CONF', render_dnsmasq(config))
    run_checked("/etc/init.d/dnsmasq restart")
