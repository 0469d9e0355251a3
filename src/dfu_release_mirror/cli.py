"""
DFU Release Mirror CLI

Inspect DFU packages and mirror upstream firmware releases.
"""

import hashlib
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from dfu_release_mirror.dfu_package import (
    DfuPackageError,
    DfuPackageParser,
    ImageKind,
)
from dfu_release_mirror.version_scan import iter_version_tokens
from dfu_release_mirror.mirror import MirrorError, ReleaseMirror
from dfu_release_mirror.core.config import MirrorConfig
from dfu_release_mirror.core.parsing import (
    parse_image_kinds as _parse_image_kinds_core,
    parse_whitelist,
)

logger = logging.getLogger("dfu_release_mirror")

console = Console()

app = typer.Typer(help="DFU Release Mirror - firmware package inspection and release mirroring")


@app.callback()
def setup(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
        force=True,
    )


def print_header(text: str) -> None:
    """Print fancy header."""
    console.print(Panel(text, expand=False, style="bold blue"))


def print_success(text: str) -> None:
    """Print success message."""
    console.print(f"✓ {text}", style="green")


def print_warning(text: str) -> None:
    """Print warning message."""
    console.print(f"⚠️  {text}", style="yellow")


def print_error(text: str) -> None:
    """Print error message."""
    console.print(f"❌ {text}", style="red")


def parse_image_kinds(value: str) -> List[ImageKind]:
    """
    Parse image kinds for CLI options.

    CLI wrapper around core.parsing.parse_image_kinds that converts
    ValueError to typer.BadParameter for proper CLI error handling.
    """
    try:
        return _parse_image_kinds_core(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def load_package(package: str) -> DfuPackageParser:
    """Read a package file into a parser, exiting on missing file."""
    path = Path(package)
    if not path.exists():
        print_error(f"File not found: {package}")
        raise typer.Exit(1)
    return DfuPackageParser(path.read_bytes())


@app.command()
def inspect(
    package: str = typer.Argument(..., help="Path to DFU package (.zip)"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON for scripting"),
    all_versions: bool = typer.Option(False, "--all-versions", help="List every version token in the app image"),
) -> None:
    """Show the images carried by a DFU package."""
    parser = load_package(package)

    try:
        manifest = parser.get_manifest()
        images = []
        for kind in manifest.kinds():
            image = parser.get_image([kind])
            descriptor = manifest.get(kind)
            images.append({
                "kind": kind.value,
                "dat_file": descriptor.dat_file,
                "bin_file": descriptor.bin_file,
                "header_len": len(image.header),
                "body_len": len(image.body),
                "sha256": hashlib.sha256(image.body).hexdigest(),
            })
        git_version = parser.get_git_version()
        app_image = parser.get_app_image() if all_versions else None
    except DfuPackageError as exc:
        print_error(f"Invalid DFU package: {exc}")
        raise typer.Exit(1)

    tokens = list(iter_version_tokens(app_image.body)) if app_image is not None else []

    if output_json:
        data = {"package": package, "images": images, "git_version": git_version}
        if all_versions:
            data["version_tokens"] = tokens
        typer.echo(json.dumps(data, indent=2))
        return

    print_header(f"DFU Package: {Path(package).name}")
    table = Table(title="Images")
    table.add_column("Kind", style="cyan")
    table.add_column("Init packet", style="dim")
    table.add_column("Firmware", style="dim")
    table.add_column("Header", style="green")
    table.add_column("Body", style="green")
    table.add_column("SHA256", style="yellow")
    for item in images:
        table.add_row(
            item["kind"],
            item["dat_file"],
            item["bin_file"],
            f"{item['header_len']:,}",
            f"{item['body_len']:,}",
            item["sha256"][:16] + "...",
        )
    console.print(table)

    if git_version:
        print_success(f"Git version: {git_version}")
    else:
        print_warning("No git version found")
    for token in tokens:
        console.print(f"  {token}")


@app.command()
def version(
    package: str = typer.Argument(..., help="Path to DFU package (.zip)"),
) -> None:
    """Print the git version embedded in the application image."""
    parser = load_package(package)
    try:
        git_version = parser.get_git_version()
    except DfuPackageError as exc:
        print_error(f"Invalid DFU package: {exc}")
        raise typer.Exit(1)

    if git_version is None:
        print_error("No git version found")
        raise typer.Exit(1)
    typer.echo(git_version)


@app.command()
def extract(
    package: str = typer.Argument(..., help="Path to DFU package (.zip)"),
    kinds: str = typer.Option("application", "--kinds", "-k", help="Image kinds in preference order, comma-separated"),
    out: str = typer.Option(".", "--out", "-o", help="Output directory"),
) -> None:
    """Extract the first matching image's init packet and firmware."""
    candidates = parse_image_kinds(kinds)
    parser = load_package(package)

    try:
        image = parser.get_image(candidates)
        descriptor = parser.get_manifest().get(image.kind) if image is not None else None
    except DfuPackageError as exc:
        print_error(f"Invalid DFU package: {exc}")
        raise typer.Exit(1)

    if image is None:
        print_error(f"Package carries none of: {', '.join(k.value for k in candidates)}")
        raise typer.Exit(1)

    out_dir = Path(out)
    out_dir.mkdir(parents=True, exist_ok=True)
    dat_path = out_dir / Path(descriptor.dat_file).name
    bin_path = out_dir / Path(descriptor.bin_file).name
    dat_path.write_bytes(image.header)
    bin_path.write_bytes(image.body)
    logger.info(f"Wrote {dat_path} ({len(image.header)} bytes)")
    logger.info(f"Wrote {bin_path} ({len(image.body)} bytes)")
    print_success(f"Extracted {image.kind.value} image to {out_dir}")


@app.command()
def mirror(
    dist: Optional[str] = typer.Option(None, "--dist", "-d", help="Output directory (env MIRROR_DIST)"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Public base URL (env BASEURL)"),
    assets: Optional[str] = typer.Option(None, "--assets", help="Comma-separated asset whitelist (env MIRROR_ASSETS)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Download and parse without writing files"),
) -> None:
    """Mirror upstream release assets and write manifest.json."""
    config = MirrorConfig.from_env().with_overrides(
        dist_dir=dist,
        base_url=base_url,
        asset_whitelist=parse_whitelist(assets),
    )
    print_header(f"Mirroring {config.owner}/{config.repo}")

    try:
        manifest = ReleaseMirror(config, dry_run=dry_run).run()
    except (MirrorError, DfuPackageError) as exc:
        print_error(f"Mirror failed: {exc}")
        raise typer.Exit(1)

    console.print(manifest.to_summary())
    if dry_run:
        print_warning("Dry run: no files written")
    else:
        print_success(f"Manifest written to {Path(config.dist_dir) / 'manifest.json'}")


def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print(f"\n[red bold]Fatal error:[/red bold] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
