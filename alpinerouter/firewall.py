"""
Firewall and NAT configuration for Alpine Router Setup

The ruleset is rebuilt from scratch on every run: flush, default-deny
policies, then an ordered list of rules. Order matters because iptables
evaluates each chain top to bottom.
"""
import os
import shlex
from collections import namedtuple
from .backup import backup_config_file
from .config import lan_network
from .files import write_config, render_lines
from .utils import log, run_checked

FirewallRule = namedtuple('FirewallRule', ['table', 'chain', 'args'])

DEFAULT_POLICIES = [
    ('INPUT', 'DROP'),
    ('FORWARD', 'DROP'),
    ('OUTPUT', 'ACCEPT'),
]

LOG_CHAIN = 'WAN_DROP'
LOG_PREFIX = 'WAN-DROP: '


def lan_service_rules(config):
    """Services the router itself offers to the LAN."""
    lan = config['LAN_IFACE']
    return [
        ['-i', lan, '-p', 'tcp', '-d', config['LAN_IP'], '--dport', config['SSH_PORT'], '-j', 'ACCEPT'],
        ['-i', lan, '-p', 'udp', '--dport', '53', '-j', 'ACCEPT'],
        ['-i', lan, '-p', 'tcp', '--dport', '53', '-j', 'ACCEPT'],
        ['-i', lan, '-p', 'udp', '--sport', '68', '--dport', '67', '-j', 'ACCEPT'],
        ['-i', lan, '-p', 'icmp', '-j', 'ACCEPT'],
        ['-i', lan, '-p', 'udp', '--dport', '123', '-j', 'ACCEPT'],
    ]


def build_ruleset(config):
    """Return the ordered rules appended after the default policies are set."""
    wan = config['WAN_IFACE']
    lan = config['LAN_IFACE']

    rules = [
        # Loopback
        FirewallRule('filter', 'INPUT', ['-i', 'lo', '-j', 'ACCEPT']),
        FirewallRule('filter', 'OUTPUT', ['-o', 'lo', '-j', 'ACCEPT']),
        # LAN
        FirewallRule('filter', 'INPUT', ['-i', lan, '-j', 'ACCEPT']),
        FirewallRule('filter', 'OUTPUT', ['-o', lan, '-j', 'ACCEPT']),
        # Established connections
        FirewallRule('filter', 'INPUT', ['-m', 'state', '--state', 'ESTABLISHED,RELATED', '-j', 'ACCEPT']),
        FirewallRule('filter', 'FORWARD', ['-m', 'state', '--state', 'ESTABLISHED,RELATED', '-j', 'ACCEPT']),
        # NAT
        FirewallRule('nat', 'POSTROUTING', ['-s', lan_network(config), '-o', wan, '-j', 'MASQUERADE']),
        FirewallRule('filter', 'FORWARD', ['-i', lan, '-o', wan, '-j', 'ACCEPT']),
    ]

    rules.extend(FirewallRule('filter', 'INPUT', args) for args in lan_service_rules(config))

    # Log then drop whatever reaches us from the WAN unmatched
    rules.extend([
        FirewallRule('filter', LOG_CHAIN, ['-m', 'limit', '--limit', '5/min', '--limit-burst', '10',
                                           '-j', 'LOG', '--log-prefix', LOG_PREFIX, '--log-level', '4']),
        FirewallRule('filter', LOG_CHAIN, ['-j', 'DROP']),
        FirewallRule('filter', 'INPUT', ['-i', wan, '-j', LOG_CHAIN]),
        FirewallRule('filter', 'FORWARD', ['-i', wan, '-j', LOG_CHAIN]),
    ])
    return rules


class FirewallBackend:
    """Operations the firewall setup needs from the packet filter."""

    def flush(self):
        raise NotImplementedError

    def set_policy(self, chain, target):
        raise NotImplementedError

    def new_chain(self, chain, table='filter'):
        raise NotImplementedError

    def append(self, rule):
        raise NotImplementedError

    def persist(self, path):
        raise NotImplementedError


class IptablesBackend(FirewallBackend):
    """FirewallBackend driving the iptables command line tools."""

    def flush(self):
        for table in ('filter', 'nat', 'mangle'):
            run_checked(f"iptables -t {table} -F")
            run_checked(f"iptables -t {table} -X")

    def set_policy(self, chain, target):
        run_checked(f"iptables -P {chain} {target}")

    def new_chain(self, chain, table='filter'):
        run_checked(f"iptables -t {table} -N {chain}")

    def append(self, rule):
        args = ' '.join(shlex.quote(arg) for arg in rule.args)
        run_checked(f"iptables -t {rule.table} -A {rule.chain} {args}")

    def persist(self, path):
        result = run_checked("iptables-save", silent=True)
        with open(path, 'w') as f:
            f.write(result.stdout or '')


def setup_firewall(config, backend):
    """Rebuild the ruleset from a default-deny baseline."""
    log("Setting up firewall and NAT with iptables...")

    backend.flush()
    for chain, target in DEFAULT_POLICIES:
        backend.set_policy(chain, target)
    backend.new_chain(LOG_CHAIN)

    rules = build_ruleset(config)
    for rule in rules:
        backend.append(rule)

    log(f"Applied {len(rules)} firewall rules.")


def save_firewall_rules(config, backend):
    """Save the live ruleset so iptables-load can restore it at boot."""
    log("Saving iptables rules...")

    rules_file = config['IPTABLES_RULES']
    backup_config_file(config, rules_file)
    os.makedirs(os.path.dirname(rules_file), exist_ok=True)
    backend.persist(rules_file)


def render_iptables_init(config):
    """OpenRC service restoring the saved rules at boot."""
    rules_file = config['IPTABLES_RULES']
    return render_lines([
        "#!/sbin/openrc-run",
        "",
        'description="Load iptables rules"',
        "",
        "depend() {",
        "    before net",
        "}",
        "",
        "start() {",
        '    ebegin "Loading iptables rules"',
        f"    iptables-restore < {rules_file}",
        "    eend $?",
        "}",
        "",
        "stop() {",
        '    ebegin "Flushing iptables rules"',
        "    iptables -F && iptables -X && iptables -t nat -F && iptables -t nat -X \\",
        "        && iptables -P INPUT ACCEPT && iptables -P FORWARD ACCEPT && iptables -P OUTPUT ACCEPT",
        "    eend $?",
        "}",
    ])


def install_init_script(config):
    """Write the iptables-load init script."""
    return write_config(config, 'IPTABLES_INIT', render_iptables_init(config), mode=0o755)
