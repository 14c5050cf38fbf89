"""
Tests for the firewall module
"""
import unittest
import ipaddress
import os
import sys
import shutil
import tempfile
from unittest.mock import patch, MagicMock, call

# Add parent directory to path to import our modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from alpinerouter.config import load_config
from alpinerouter.firewall import (
    FirewallBackend, FirewallRule, IptablesBackend, LOG_CHAIN,
    build_ruleset, setup_firewall, save_firewall_rules
)


class FakeBackend(FirewallBackend):
    """Records what setup_firewall asks of the packet filter."""

    def __init__(self):
        self.calls = []
        self.policies = {}
        self.chains = {}

    def flush(self):
        self.calls.append('flush')
        self.chains = {}

    def set_policy(self, chain, target):
        self.calls.append(('policy', chain, target))
        self.policies[chain] = target

    def new_chain(self, chain, table='filter'):
        self.calls.append(('chain', chain))
        self.chains[chain] = []

    def append(self, rule):
        self.calls.append(('append', rule))
        if rule.table == 'filter':
            self.chains.setdefault(rule.chain, []).append(rule.args)

    def persist(self, path):
        self.calls.append(('persist', path))
        with open(path, 'w') as f:
            f.write("*filter\nCOMMIT\n")


def matches(args, packet):
    """Return the jump target if the rule args match packet, else None."""
    target = None
    i = 0
    while i < len(args):
        opt = args[i]
        if opt == '-j':
            target = args[i + 1]
            break
        if opt == '-m':
            i += 2
            continue
        value = args[i + 1]
        if opt == '-i' and packet.get('in') != value:
            return None
        if opt == '-o' and packet.get('out') != value:
            return None
        if opt == '-p' and packet.get('proto') != value:
            return None
        if opt == '--dport' and str(packet.get('dport')) != value:
            return None
        if opt == '--sport' and str(packet.get('sport')) != value:
            return None
        if opt == '--state' and packet.get('state', 'NEW') not in value.split(','):
            return None
        if opt == '-d' and packet.get('dst') != value:
            return None
        if opt == '-s' and ipaddress.ip_address(packet['src']) not in ipaddress.ip_network(value):
            return None
        if opt in ('--limit', '--limit-burst', '--log-prefix', '--log-level'):
            pass
        i += 2
    return target


def evaluate(backend, chain, packet):
    """Walk chain top to bottom like the kernel; None means fall through."""
    for args in backend.chains.get(chain, []):
        target = matches(args, packet)
        if target in ('ACCEPT', 'DROP'):
            return target
        if target in backend.chains:
            verdict = evaluate(backend, target, packet)
            if verdict:
                return verdict
    return backend.policies.get(chain)


@patch('builtins.print')
class TestFirewall(unittest.TestCase):
    """Test cases for firewall functions"""

    def setUp(self):
        self.config = load_config()
        self.backend = FakeBackend()
        setup_firewall(self.config, self.backend)

    def test_flush_then_default_deny(self, mock_print):
        """Test the ruleset starts from a flushed default-deny baseline"""
        self.assertEqual(self.backend.calls[0], 'flush')
        self.assertEqual(self.backend.calls[1:4], [
            ('policy', 'INPUT', 'DROP'),
            ('policy', 'FORWARD', 'DROP'),
            ('policy', 'OUTPUT', 'ACCEPT'),
        ])

    def test_masquerade_on_wan(self, mock_print):
        """Test NAT is applied on the WAN interface"""
        self.assertIn(
            FirewallRule('nat', 'POSTROUTING', ['-s', '10.0.0.0/24', '-o', 'eth1', '-j', 'MASQUERADE']),
            build_ruleset(self.config))

    def test_log_before_drop(self, mock_print):
        """Test the logging chain logs and then drops"""
        targets = [args[args.index('-j') + 1] for args in self.backend.chains[LOG_CHAIN]]
        self.assertEqual(targets, ['LOG', 'DROP'])

    def test_wan_input_denied(self, mock_print):
        """Test unsolicited WAN packets hit no allow rule"""
        packets = [
            {'in': 'eth1', 'proto': 'tcp', 'dport': 22, 'dst': '10.0.0.1'},
            {'in': 'eth1', 'proto': 'udp', 'dport': 53},
            {'in': 'eth1', 'proto': 'udp', 'sport': 68, 'dport': 67},
            {'in': 'eth1', 'proto': 'icmp'},
            {'in': 'eth1', 'proto': 'tcp', 'dport': 443},
        ]
        for packet in packets:
            self.assertEqual(evaluate(self.backend, 'INPUT', packet), 'DROP', packet)

    def test_wan_forward_denied(self, mock_print):
        """Test new connections from the WAN are not forwarded to the LAN"""
        packet = {'in': 'eth1', 'out': 'eth2', 'proto': 'tcp', 'dport': 80, 'src': '203.0.113.5'}
        self.assertEqual(evaluate(self.backend, 'FORWARD', packet), 'DROP')

    def test_wan_established_accepted(self, mock_print):
        """Test replies to LAN-initiated traffic come back in"""
        packet = {'in': 'eth1', 'out': 'eth2', 'proto': 'tcp', 'sport': 443, 'state': 'ESTABLISHED'}
        self.assertEqual(evaluate(self.backend, 'FORWARD', packet), 'ACCEPT')

    def test_lan_accepted(self, mock_print):
        """Test any LAN-originated packet is accepted"""
        packets = [
            {'in': 'eth2', 'proto': 'tcp', 'dport': 22, 'dst': '10.0.0.1'},
            {'in': 'eth2', 'proto': 'tcp', 'dport': 8080},
            {'in': 'eth2', 'proto': 'udp', 'dport': 123},
            {'in': 'eth2', 'proto': 'icmp'},
        ]
        for packet in packets:
            self.assertEqual(evaluate(self.backend, 'INPUT', packet), 'ACCEPT', packet)

        outbound = {'in': 'eth2', 'out': 'eth1', 'proto': 'tcp', 'dport': 443, 'src': '10.0.0.42'}
        self.assertEqual(evaluate(self.backend, 'FORWARD', outbound), 'ACCEPT')

    def test_ruleset_is_deterministic(self, mock_print):
        """Test building the ruleset twice gives the same rules"""
        self.assertEqual(build_ruleset(self.config), build_ruleset(self.config))

    def test_save_firewall_rules(self, mock_print):
        """Test the live rules are persisted and an old copy backed up"""
        tmp = tempfile.mkdtemp()
        try:
            self.config['IPTABLES_RULES'] = os.path.join(tmp, 'iptables', 'rules')
            save_firewall_rules(self.config, self.backend)
            save_firewall_rules(self.config, self.backend)

            self.assertEqual(self.backend.calls[-1], ('persist', self.config['IPTABLES_RULES']))
            names = os.listdir(os.path.join(tmp, 'iptables'))
            self.assertIn('rules', names)
            self.assertTrue(any(n.startswith('rules.bak-') for n in names))
        finally:
            shutil.rmtree(tmp)


@patch('builtins.print')
class TestIptablesBackend(unittest.TestCase):
    """Test cases for the iptables command backend"""

    @patch('alpinerouter.firewall.run_checked')
    def test_commands(self, mock_run, mock_print):
        """Test each operation maps to an iptables invocation"""
        backend = IptablesBackend()
        backend.set_policy('INPUT', 'DROP')
        backend.new_chain(LOG_CHAIN)
        backend.append(FirewallRule('nat', 'POSTROUTING', ['-o', 'eth1', '-j', 'MASQUERADE']))
        backend.append(FirewallRule('filter', LOG_CHAIN, ['-j', 'LOG', '--log-prefix', 'WAN-DROP: ']))

        mock_run.assert_has_calls([
            call("iptables -P INPUT DROP"),
            call("iptables -t filter -N WAN_DROP"),
            call("iptables -t nat -A POSTROUTING -o eth1 -j MASQUERADE"),
            call("iptables -t filter -A WAN_DROP -j LOG --log-prefix 'WAN-DROP: '"),
        ])

    @patch('alpinerouter.firewall.run_checked')
    def test_flush(self, mock_run, mock_print):
        """Test every table is flushed and its custom chains removed"""
        IptablesBackend().flush()

        mock_run.assert_any_call("iptables -t filter -F")
        mock_run.assert_any_call("iptables -t filter -X")
        mock_run.assert_any_call("iptables -t nat -F")

    @patch('alpinerouter.firewall.run_checked')
    def test_persist(self, mock_run, mock_print):
        """Test iptables-save output is written to the rules file"""
        mock_run.return_value = MagicMock(returncode=0, stdout="*nat\nCOMMIT\n")

        with tempfile.NamedTemporaryFile(delete=False) as f:
            path = f.name
        try:
            IptablesBackend().persist(path)
            with open(path) as f:
                self.assertEqual(f.read(), "*nat\nCOMMIT\n")
        finally:
            os.unlink(path)

        mock_run.assert_called_once_with("iptables-save", silent=True)


if __name__ == '__main__':
    unittest.main()
