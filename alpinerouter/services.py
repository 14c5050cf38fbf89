"""
Time sync, intrusion prevention, log rotation and service activation
"""
from .config import lan_network, get_int
from .files import write_config, render_lines
from .firewall import LOG_PREFIX, install_init_script
from .utils import log, run_command, run_checked

# init script name -> registered in the default runlevel and restarted
BOOT_SERVICES = ['iptables-load', 'dnsmasq', 'chronyd', 'fail2ban']

BAN_TIME = 3600
FIND_TIME = 600


def render_chrony(config):
    return render_lines([
        f"pool {config['NTP_POOL']} iburst",
        "",
        "driftfile /var/lib/chrony/chrony.drift",
        "makestep 1.0 3",
        "rtcsync",
        "",
        "# Serve time to the LAN",
        f"allow {lan_network(config)}",
        f"bindaddress {config['LAN_IP']}",
        "",
        "logdir /var/log/chrony",
    ])


def render_fail2ban_jail(config):
    logpath = config['FIREWALL_LOG']
    return render_lines([
        "[DEFAULT]",
        f"bantime = {BAN_TIME}",
        f"findtime = {FIND_TIME}",
        "maxretry = 5",
        f"ignoreip = 127.0.0.1/8 {lan_network(config)}",
        "banaction = iptables-multiport",
        "",
        "[sshd]",
        "enabled = true",
        f"port = {get_int(config, 'SSH_PORT')}",
        "filter = sshd",
        f"logpath = {logpath}",
        "",
        "[wan-access]",
        "enabled = true",
        "filter = wan-access",
        "banaction = iptables-allports",
        f"logpath = {logpath}",
        "maxretry = 10",
    ])


def render_fail2ban_filter(config):
    """Matches the log lines written by the WAN drop chain."""
    return render_lines([
        "[Definition]",
        f"failregex = {LOG_PREFIX.strip()} .*SRC=<HOST> ",
        "ignoreregex =",
    ])


def render_logrotate(config):
    """Rotates the syslog file the WAN drop chain logs to, and the dnsmasq log."""
    return render_lines([
        f"{config['FIREWALL_LOG']} {config['DNSMASQ_LOG']} {{",
        "    daily",
        "    rotate 7",
        "    compress",
        "    delaycompress",
        "    missingok",
        "    notifempty",
        "    postrotate",
        "        /etc/init.d/syslog --ifstarted reload >/dev/null 2>&1 || true",
        "    endscript",
        "}",
    ])


def setup_chrony(config):
    log("Configuring chrony...")
    write_config(config, 'CHRONY_CONF', render_chrony(config))


def setup_fail2ban(config):
    log("Configuring fail2ban...")
    write_config(config, 'FAIL2BAN_JAIL', render_fail2ban_jail(config))
    write_config(config, 'FAIL2BAN_FILTER', render_fail2ban_filter(config))


def setup_logrotate(config):
    log("Configuring log rotation...")
    write_config(config, 'LOGROTATE_CONF', render_logrotate(config))


def service_enabled(name, runlevel='default'):
    """Check `rc-update show` output, whose lines read '  name | runlevel'."""
    result = run_command(f"rc-update show {runlevel}", silent=True)
    if result.returncode != 0 or not result.stdout:
        return False
    return any(line.split('|')[0].strip() == name for line in result.stdout.splitlines())


def enable_service(name, runlevel='default'):
    """Register name in runlevel; a no-op if already there."""
    if service_enabled(name, runlevel):
        log(f"{name} is already in the {runlevel} runlevel. Skipping.")
        return
    run_checked(f"rc-update add {name} {runlevel}")


def restart_service(name):
    run_checked(f"/etc/init.d/{name} restart")


def activate_services(config):
    """Install the firewall loader, register every daemon and restart it."""
    log("Activating services...")
    install_init_script(config)

    for name in BOOT_SERVICES:
        enable_service(name)

    # iptables-load would re-read the rules just applied; only restart daemons
    for name in BOOT_SERVICES[1:]:
        log(f"Restarting {name}...")
        restart_service(name)
