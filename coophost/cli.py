"""
coophost CLI - rehearse discovery and session flows against a simulated world.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from .config import Config, DEFAULT_DATA_DIR, get_config
from .coordinator import Coordinator
from .errors import CoopHostError
from .platform.simulated import SimulatedWorld

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler()]
    )


def _load(world_path: str, user_id: Optional[int]):
    """Load a world and build the coordinator for the acting user."""
    world = SimulatedWorld.load(world_path)
    local = user_id if user_id is not None else world.local_user
    if local is None:
        if not world.users:
            raise click.ClickException(f"{world_path} defines no users")
        local = next(iter(world.users))
    if local not in world.users:
        raise click.ClickException(f"User {local} is not part of {world_path}")

    config = get_config()
    if not config.target_app_id:
        config = replace(config, target_app_id=world.app_id)

    native = world.platform_for(local)
    coordinator = Coordinator(native, config, id_factory=native.id_factory)
    return world, local, coordinator


def _print_hosts(coordinator: Coordinator):
    hosts = sorted(coordinator.active_hosts(), key=lambda h: -h.last_seen)
    if not hosts:
        console.print("[yellow]No hosts discovered.[/yellow]")
        return

    table = Table(title="Available Hosts")
    table.add_column("Peer ID", style="cyan")
    table.add_column("Session")
    table.add_column("Players", justify="right")
    for host in hosts:
        table.add_row(str(host.peer_id), host.session_name, str(host.player_count))
    console.print(table)


def _print_bindings(coordinator: Coordinator):
    table = Table(title="Operation Bindings")
    table.add_column("Operation")
    table.add_column("Call Shape")
    for operation, shape in sorted(coordinator.binder.resolution_table().items()):
        table.add_row(operation, f"[green]{shape}[/green]" if shape else "[dim]unresolved[/dim]")
    console.print(table)


def _print_status(coordinator: Coordinator):
    status = coordinator.status()
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("State", f"[cyan]{status['state']}[/cyan]")
    table.add_row("Local ID", str(status["local_id"]))
    table.add_row("Group", status["lobby_token"] or "[dim]none[/dim]")
    table.add_row("Group Owner", "yes" if status["is_group_owner"] else "no")
    table.add_row("Active Hosts", str(status["active_hosts"]))
    console.print(table)


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.pass_context
def main(ctx, verbose):
    """coophost - co-op host discovery"""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    setup_logging(verbose)


@main.command()
@click.option('--data-dir', type=click.Path(), help='Data directory')
@click.option('--game', '-g', default="Co-op", help='Game title used in session names')
@click.option('--app-id', type=int, default=0, help='App id friends must be playing')
def init(data_dir: Optional[str], game: str, app_id: int):
    """Write a default configuration."""
    data_path = Path(data_dir) if data_dir else DEFAULT_DATA_DIR
    config = Config(data_dir=data_path, game_title=game, target_app_id=app_id)

    if Config.exists(data_path):
        console.print(f"[yellow]Configuration already exists at {config.config_path}[/yellow]")
        if not click.confirm("Overwrite?"):
            return

    config.save()
    console.print(f"[bold green]✓ Configuration written to {config.config_path}[/bold green]")


@main.command()
@click.argument('world', type=click.Path(exists=True))
@click.option('--user', '-u', type=int, help='Act as this user (defaults to the world\'s local user)')
def scan(world: str, user: Optional[int]):
    """Run one presence scan and list discovered hosts."""
    _, local, coordinator = _load(world, user)
    console.print(f"\n[bold blue]Scanning friends of {local}[/bold blue]\n")

    report = coordinator.scanner.scan()
    if report is not None:
        console.print(
            f"Checked {report.friends_checked} friends, "
            f"{report.players_in_game} in game, {report.hosts_found} hosting\n"
        )
    _print_hosts(coordinator)


@main.command()
@click.argument('world', type=click.Path(exists=True))
@click.option('--user', '-u', type=int, help='Act as this user (defaults to the world\'s local user)')
def host(world: str, user: Optional[int]):
    """Start hosting and show the resulting session."""
    _, local, coordinator = _load(world, user)

    if coordinator.request_host():
        console.print(f"\n[bold green]✓ {local} is hosting[/bold green]\n")
    else:
        console.print(f"\n[red]✗ {local} could not host[/red]\n")
    _print_status(coordinator)
    console.print()
    _print_bindings(coordinator)


@main.command()
@click.argument('world', type=click.Path(exists=True))
@click.option('--user', '-u', type=int, help='Act as this user (defaults to the world\'s local user)')
@click.option('--invite', '-i', type=int, help='Simulate an invite from this user first')
@click.option('--hint', default="", help='Lobby hint used when no host is known')
def join(world: str, user: Optional[int], invite: Optional[int], hint: str):
    """Discover hosts and auto-join the best one."""
    _, local, coordinator = _load(world, user)

    if invite is not None:
        coordinator.on_invite_received(invite)
    coordinator.tick()

    if coordinator.request_auto_join(hint):
        console.print(f"\n[bold green]✓ {local} joined {coordinator.lifecycle.group_id}[/bold green]\n")
    else:
        console.print(f"\n[red]✗ No joinable host for {local}[/red]\n")
    _print_status(coordinator)


@main.command()
@click.argument('world', type=click.Path(exists=True))
@click.option('--user', '-u', type=int, help='Act as this user (defaults to the world\'s local user)')
def bindings(world: str, user: Optional[int]):
    """Resolve every catalogued operation and show the winning call shapes."""
    _, _, coordinator = _load(world, user)

    for operation in coordinator.binder.operations:
        try:
            coordinator.binder.resolve(operation)
        except CoopHostError as e:
            logger.debug(f"{operation}: {e}")
    _print_bindings(coordinator)


if __name__ == '__main__':
    main()
