import click
from .utils import ensure_root, log, error_exit
from .config import load_config, GENERATED_FILES
from .backup import list_backups, restore_settings
from .errors import RouterSetupError
from .marker import read_last_run
from .orchestrator import run_setup


@click.group()
@click.pass_context
def cli(ctx):
    "Turn an Alpine Linux host into a NAT router"
    ensure_root()
    ctx.obj = {}


@cli.command()
@click.option('--config', default=None, help='Path to configuration file')
def setup(config):
    "Perform full router setup"
    log('Starting setup...')
    cfg = load_config(config)
    try:
        run_setup(cfg)
    except RouterSetupError as e:
        error_exit(f"Setup failed: {e}")


@cli.command()
@click.option('--config', default=None, help='Path to configuration file')
def restore(config):
    "Restore the newest backup of every generated file"
    log('Starting restore...')
    cfg = load_config(config)
    try:
        restore_settings(cfg)
    except RouterSetupError as e:
        error_exit(f"Restore failed: {e}")
    log('Restore complete. Restart the affected services or reboot.')


@cli.command()
@click.option('--config', default=None, help='Path to configuration file')
def status(config):
    "Show the last successful run and the backups kept"
    cfg = load_config(config)
    try:
        last_run = read_last_run(cfg['MARKER_FILE'])
    except RouterSetupError as e:
        error_exit(str(e))
    click.echo(f"Last run: {last_run or 'never'}")
    for key in GENERATED_FILES:
        path = cfg[key]
        click.echo(f"{path}: {len(list_backups(path))} backup(s)")


if __name__ == '__main__':
    cli()
