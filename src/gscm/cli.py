"""
gscm Command Line Interface.

Commands:
- gscm run <config.yaml>      : Run a simulation and export channel histories
- gscm validate <config.yaml> : Validate a config file
- gscm info <config.yaml>     : Show the subcarrier grid of a config
"""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from gscm import __version__
from gscm.config.loader import ConfigLoadError, load_config
from gscm.config.schema import SimulationConfig

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load(config_path: Path) -> SimulationConfig:
    try:
        return load_config(config_path)
    except ConfigLoadError as e:
        raise click.ClickException(str(e)) from e


def _print_run_summary(summary) -> None:
    """Print a summary of a finished run."""
    console.print()

    table = Table(title=f"Run '{summary.name}'")
    table.add_column("Item", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Frames computed", str(summary.frames_computed))
    table.add_row("Frames skipped", str(summary.frames_skipped))
    table.add_row("Simulated time", f"{summary.simulated_time_s:.3f} s")
    table.add_row("First-order scatterers", str(summary.num_first_order))
    table.add_row("Second-order pairs", str(summary.num_second_order_pairs))
    table.add_row("Draw requests", f"{summary.draw_requests} ({summary.draw_dropped} dropped)")
    console.print(table)

    if summary.written:
        console.print()
        files = Table(title="Exported Histories")
        files.add_column("Channel", style="cyan")
        files.add_column("File")
        for channel_type, path in summary.written.items():
            files.add_row(channel_type.value, str(path))
        console.print(files)


@click.group()
@click.version_option(version=__version__, prog_name="gscm")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def main(verbose: bool) -> None:
    """gscm - geometry-based multipath channel simulation

    Computes LOS, ground-reflection and scatterer (NLOS) frequency responses
    between a moving TX and RX, frame by frame.
    """
    setup_logging(verbose)


@main.command()
@click.argument("config", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (overrides output.directory)",
)
@click.option("--seed", type=int, default=None, help="Random seed (overrides simulation.seed)")
def run(config: Path, output_dir: Path | None, seed: int | None) -> None:
    """Run a simulation and export its channel histories.

    CONFIG is the path to a simulation YAML file.
    """
    from gscm.simulation.runner import SimulationRunner

    sim_config = _load(config)
    if seed is not None:
        sim_config.simulation.seed = seed

    console.print(f"[bold blue]Running simulation:[/] {config}")
    runner = SimulationRunner.from_config(sim_config, output_dir=output_dir)
    summary = runner.run()

    if len(summary.written) < 4:
        console.print("[bold yellow]Some histories could not be exported (see log)[/]")
    else:
        console.print("[bold green]Simulation complete[/]")
    _print_run_summary(summary)


@main.command()
@click.argument("config", type=click.Path(exists=True, path_type=Path))
def validate(config: Path) -> None:
    """Validate a simulation config file.

    CONFIG is the path to a simulation YAML file.
    """
    sim_config = _load(config)
    scene = sim_config.scene

    order_counts: dict[int, int] = {}
    for s in scene.scatterers:
        order_counts[s.order] = order_counts.get(s.order, 0) + 1

    console.print(f"[bold green]Valid config:[/] {sim_config.name}")
    console.print(f"  Buildings: {len(scene.buildings)} ({len(scene.metallic_buildings)} metallic)")
    console.print(
        f"  Scatterers: {len(scene.scatterers)} "
        f"(order 1: {order_counts.get(1, 0)}, order 2: {order_counts.get(2, 0)})"
    )
    for name, node in (("TX", scene.tx), ("RX", scene.rx)):
        if node is None:
            console.print(f"  [yellow]{name}: not configured, every frame will be skipped[/]")
        else:
            console.print(f"  {name}: {node.position.as_tuple()}")
    if scene.ground_height is None:
        console.print("  [yellow]Ground: not configured, every frame will be skipped[/]")


@main.command()
@click.argument("config", type=click.Path(exists=True, path_type=Path))
def info(config: Path) -> None:
    """Show the subcarrier grid for a config.

    CONFIG is the path to a simulation YAML file.
    """
    from gscm.simulation.runner import engine_settings

    sim_config = _load(config)
    freqs = engine_settings(sim_config).subcarrier_frequencies()
    ch = sim_config.channel

    table = Table(title="Subcarrier Grid")
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Subcarriers", str(ch.num_subcarriers))
    table.add_row("First subcarrier", f"{freqs[0] / 1e9:.6f} GHz")
    table.add_row("Last subcarrier", f"{freqs[-1] / 1e9:.6f} GHz")
    table.add_row("Bandwidth", f"{ch.bandwidth_hz / 1e6:.3f} MHz")
    table.add_row("Delay resolution", f"{1e9 / ch.bandwidth_hz:.3f} ns")
    table.add_row("Max delay", f"{1e6 / ch.subcarrier_spacing_hz:.3f} us")
    console.print(table)


if __name__ == "__main__":
    main()
