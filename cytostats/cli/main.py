"""Command-line interface for cytostats.

Provides CLI commands for computing statistics and dimension-reduced maps
from a sample registry and an optional gating template.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from .. import __version__
from ..core.errors import CytoStatsError


def setup_logging(verbose: bool = False, debug: bool = False) -> logging.Logger:
    """Setup logging for CLI commands."""
    level = logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    return logging.getLogger("cytostats")


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="cytostats")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool) -> None:
    """cytostats: summary statistics for gated cytometry samples.

    Examples:

        # Median fluorescence of two populations, long format
        cytostats stats -r samples.csv -t gating.yaml -a "T Cells" -a "B Cells" -o medfi

        # Frequencies relative to a parent population, wide format
        cytostats stats -r samples.csv -t gating.yaml -s freq -a "T Cells" -p Cells -f wide -o freq

        # UMAP of live cells
        cytostats map -r samples.csv -t gating.yaml -a "Live Cells" --type UMAP -o maps/
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["logger"] = setup_logging(verbose, debug)


@cli.command()
@click.option("--registry", "-r", required=True, type=click.Path(exists=True),
              help="Sample registry CSV (name, events_path, metadata)")
@click.option("--template", "-t", type=click.Path(exists=True),
              help="Gating template (YAML)")
@click.option("--stat", "-s", "statistic", default=None,
              help="Statistic: count, freq, mean, geo mean, median, mode, CV")
@click.option("--alias", "-a", multiple=True, help="Population(s) to summarize")
@click.option("--parent", "-p", multiple=True, help="Parent population(s) for freq")
@click.option("--channel", "-c", "channels", multiple=True, help="Channel(s) or marker(s)")
@click.option("--format", "-f", "fmt", type=click.Choice(["long", "wide"]), default=None,
              help="Output layout")
@click.option("--density-smooth", type=float, default=None, help="Smoothing for mode")
@click.option("--config", type=click.Path(exists=True),
              help="Statistics configuration file (YAML)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output CSV (.csv appended when missing)")
@click.pass_context
def stats(
    ctx: click.Context,
    registry: str,
    template: Optional[str],
    statistic: Optional[str],
    alias: Tuple[str, ...],
    parent: Tuple[str, ...],
    channels: Tuple[str, ...],
    fmt: Optional[str],
    density_smooth: Optional[float],
    config: Optional[str],
    output_path: str,
) -> None:
    """Compute a statistic for every sample and population."""
    logger = ctx.obj["logger"]

    from ..core.samples import load_experiment
    from ..core.statistics import StatisticsConfig, StatisticsEngine, export_provenance
    from ..io.logging import get_logger, log_yaml

    cfg = StatisticsConfig.from_yaml(Path(config)) if config else StatisticsConfig()
    out = Path(output_path)
    run_logger, log_path = get_logger("cytostats.stats", out.parent / "logs" / "stats.log")
    run_logger.info("Registry: %s", registry)
    run_logger.info("Template: %s", template)

    try:
        source = load_experiment(registry, gating_template=template)
        engine = StatisticsEngine(cfg)
        result = engine.execute(
            source,
            statistic=statistic,
            channels=list(channels) or None,
            format=fmt,
            alias=list(alias) or None,
            parent=list(parent) or None,
            density_smooth=density_smooth,
            save_as=out,
        )
    except (CytoStatsError, FileNotFoundError, ValueError) as e:
        run_logger.error("%s", e)
        _fail(str(e))
        return

    prov_path = export_provenance(result, result.output_path.parent, prefix=f"{result.output_path.stem}_")
    log_yaml(None, result.provenance, logger=run_logger)

    logger.info("Provenance written to %s", prov_path)
    logger.info("Run log written to %s", log_path)
    click.echo(f"Wrote {len(result.data)} rows to {result.output_path}")


@cli.command("map")
@click.option("--registry", "-r", required=True, type=click.Path(exists=True),
              help="Sample registry CSV (name, events_path, metadata)")
@click.option("--template", "-t", type=click.Path(exists=True),
              help="Gating template (YAML)")
@click.option("--alias", "-a", default="root", help="Population to map")
@click.option("--channel", "-c", "channels", multiple=True, help="Channel(s) or marker(s)")
@click.option("--type", "map_type", default=None, help="PCA, tSNE or UMAP")
@click.option("--display", type=float, default=None,
              help="Events per sample: fraction (<= 1) or count")
@click.option("--seed", type=int, default=None, help="Random seed")
@click.option("--config", type=click.Path(exists=True),
              help="Mapping configuration file (YAML)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output directory")
@click.pass_context
def map_command(
    ctx: click.Context,
    registry: str,
    template: Optional[str],
    alias: str,
    channels: Tuple[str, ...],
    map_type: Optional[str],
    display: Optional[float],
    seed: Optional[int],
    config: Optional[str],
    output_path: str,
) -> None:
    """Compute a consensus map across all samples."""
    logger = ctx.obj["logger"]

    from ..core.mapping import MappingConfig, MappingEngine
    from ..core.samples import load_experiment
    from ..io.csv import ensure_output_dir, write_dataframe
    from ..io.logging import log_json

    cfg = MappingConfig.from_yaml(Path(config)) if config else MappingConfig()
    out_dir = ensure_output_dir(output_path)

    try:
        source = load_experiment(registry, gating_template=template)
        result = MappingEngine(cfg).execute(
            source,
            alias=alias,
            channels=list(channels) or None,
            map_type=map_type,
            display=display,
            seed=seed,
        )
    except (CytoStatsError, FileNotFoundError, ValueError) as e:
        _fail(str(e))
        return

    coords_path = write_dataframe(result.coordinates, out_dir / f"{result.map_type}_coordinates.csv")
    log_json(out_dir / "map_provenance.jsonl", result.provenance)

    logger.info("Mapped channels: %s", ", ".join(result.channels))
    click.echo(f"Wrote {len(result.coordinates)} {result.map_type} co-ordinates to {coords_path}")


def main() -> None:
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
