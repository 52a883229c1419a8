"""CLI entry point for pluginindex.

Commands:
    build: Resolve every manifest entry and write the index artifacts
    check: Validate the manifest and credentials without network access

Example:
    export GITHUB_TOKEN=ghp_xxx GITHUB_USER=octocat
    pluginindex build --manifest repositories.json --output dist
    pluginindex check --manifest repositories.json
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import NoReturn

import click

from pluginindex import __version__
from pluginindex.adapters.github_adapter import GitHubReleaseSource
from pluginindex.config import load_config, load_manifest, require_credentials
from pluginindex.core import IndexBuilder
from pluginindex.emitter import ArtifactEmitter, prepare_output_directory
from pluginindex.exceptions import ConfigError, EmitError, ManifestError, ReleaseSourceError
from pluginindex.logging import get_logger, setup_logging
from pluginindex.models import PluginIndexConfig

logger = get_logger(__name__)


def _success(msg: str) -> str:
    """Format success message with green checkmark."""
    return click.style("✓", fg="green") + " " + msg


def _error(msg: str) -> str:
    """Format error message with red X."""
    return click.style("✗", fg="red") + " " + msg


def _info(msg: str) -> str:
    """Format info message with blue arrow."""
    return click.style("→", fg="blue") + " " + msg


def _fail(message: str, error: Exception) -> NoReturn:
    logger.error(message, extra={"error": str(error)})
    click.echo(_error(f"{message}: {error}"), err=True)
    sys.exit(1)


def _load_settings(
    config_path: Path | None,
    timeout: float | None,
    workers: int | None,
) -> PluginIndexConfig:
    """Load the config file, apply CLI overrides, and require credentials."""
    config = load_config(config_path)

    overrides: dict[str, float | int] = {}
    if timeout is not None:
        overrides["timeout_seconds"] = timeout
    if workers is not None:
        overrides["max_workers"] = workers
    if overrides:
        config = config.model_copy(update={"build": config.build.model_copy(update=overrides)})

    return require_credentials(config)


@click.group()
@click.version_option(version=__version__, prog_name="pluginindex")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """pluginindex - static plugin index builder.

    Inventories the latest published release of every repository in a
    manifest and writes index.json, per-plugin documents, and index.html.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command()
@click.option(
    "--manifest",
    "-m",
    "manifest_path",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Repository manifest (JSON with a 'repositories' object)",
)
@click.option(
    "--output",
    "-o",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Directory to write the index into",
)
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Scratch directory to create alongside the output",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Time budget in seconds for resolving all repositories",
)
@click.option(
    "--workers",
    type=click.IntRange(1, 64),
    default=None,
    help="Maximum concurrent repository resolutions",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to .pluginindex.yaml",
)
@click.option("--clean/--no-clean", default=True, help="Remove previous output first")
def build(
    manifest_path: Path,
    output_dir: Path,
    work_dir: Path | None,
    timeout: float | None,
    workers: int | None,
    config_path: Path | None,
    clean: bool,
) -> None:
    """Build the plugin index."""
    try:
        config = _load_settings(config_path, timeout, workers)
        entries = load_manifest(manifest_path)
    except (ConfigError, ManifestError) as e:
        _fail("Error building index", e)

    try:
        prepare_output_directory(output_dir, work_dir, clean=clean)
        with GitHubReleaseSource(config.github) as source:
            report = IndexBuilder.from_config(config, source).build(entries)
        ArtifactEmitter(config.platform.key, config.output.title).emit(report.index, output_dir)
    except (ReleaseSourceError, EmitError) as e:
        _fail("Error building index", e)

    click.echo(_success(f"Indexed {report.resolved} of {report.total} plugins into {output_dir}"))
    skipped = report.no_eligible_release + report.failed + len(report.timed_out)
    if skipped:
        click.echo(_info(f"{skipped} plugin(s) omitted, see log for details"))


@cli.command()
@click.option(
    "--manifest",
    "-m",
    "manifest_path",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Repository manifest (JSON with a 'repositories' object)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to .pluginindex.yaml",
)
def check(manifest_path: Path, config_path: Path | None) -> None:
    """Validate the manifest and credentials without contacting GitHub."""
    try:
        config = _load_settings(config_path, None, None)
        entries = load_manifest(manifest_path)
    except (ConfigError, ManifestError) as e:
        _fail("Check failed", e)

    click.echo(_success(f"Credentials present for {config.github.user}"))
    click.echo(_success(f"{len(entries)} plugin(s) in {manifest_path}"))
    for entry in entries:
        click.echo(f"  {entry.name}: {entry.repository}")


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
