"""
Setup orchestration for Alpine Router Setup

Stages run top to bottom and the first failure stops the run. Nothing is
rolled back: the operator fixes the cause and runs the setup again.
"""
from .config import save_runtime_config
from .dnsmasq import setup_dnsmasq
from .errors import RouterSetupError, StageError
from .firewall import IptablesBackend, setup_firewall, save_firewall_rules
from .marker import check_rerun, write_last_run
from .network import setup_interfaces, setup_routing
from .packages import install_packages
from .services import setup_chrony, setup_fail2ban, setup_logrotate, activate_services
from .utils import log


def build_stages(backend):
    """Ordered (name, callable) pairs; each callable takes the config."""
    return [
        ('dependencies', install_packages),
        # dnsmasq binds to the LAN interface, so networking comes first
        ('interfaces', setup_interfaces),
        ('routing', setup_routing),
        ('dnsmasq', setup_dnsmasq),
        ('firewall', lambda config: setup_firewall(config, backend)),
        ('firewall-persist', lambda config: save_firewall_rules(config, backend)),
        ('chrony', setup_chrony),
        ('fail2ban', setup_fail2ban),
        ('logrotate', setup_logrotate),
        ('services', activate_services),
    ]


def run_stage(name, func, config):
    log(f"==> {name}")
    try:
        func(config)
    except StageError:
        raise
    except (RouterSetupError, OSError) as e:
        raise StageError(name, e) from e


def record_run(config):
    """Write the last-run marker and the settings used."""
    write_last_run(config['MARKER_FILE'])
    save_runtime_config(config, config['RUNTIME_CONFIG'])


def run_setup(config, prompt=input, backend=None):
    """
    Run the complete router setup.
    Returns False if the operator declined a rerun, True once finished.
    Raises StageError naming the stage that failed, or MarkerError when
    the last-run marker cannot be read.
    """
    if not check_rerun(config, prompt):
        return False

    backend = backend or IptablesBackend()
    for name, func in build_stages(backend):
        run_stage(name, func, config)
    run_stage('record', record_run, config)

    log("Router setup completed. Please reboot.")
    return True
