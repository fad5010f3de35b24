"""CLI interface for cdn-image using Typer.

Main entry point for the application. Builds delivery URLs and img tags,
previews breakpoint snapping, and renders data-src documents.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .client import Cloudinary
from .config import ConfigError, load_config, validate_config
from .markup import extract_images, render_document, save_new_document
from .models import Config
from .responsive import apply_breakpoint_policy
from .url import ValidationError
from .utils import copy_to_clipboard, format_output, parse_key_values, print_error, print_success, print_warning


app = typer.Typer(
    name="cdn-image",
    help="Build CDN image URLs, img tags and responsive breakpoints",
    add_completion=False,
)
console = Console()


def make_client(
    cloud_name: Optional[str] = None,
    config_file: Optional[Path] = None,
) -> Cloudinary:
    """Load configuration and return a client.

    Raises:
        ConfigError: If configuration is invalid or cloud_name is missing
    """
    config = load_config(config_file)
    if cloud_name:
        config = config.merged({"cloud_name": cloud_name})
    validate_config(config)
    return Cloudinary(config=config)


def collect_options(
    width: Optional[str],
    height: Optional[str],
    crop: Optional[str],
    extra: Optional[list[str]],
    **named: object,
) -> dict[str, object]:
    """Merge explicit flags and --option key=value pairs into one dict."""
    options = parse_key_values(extra or [])
    sized = parse_key_values(
        [f"{key}={value}" for key, value in (("width", width), ("height", height)) if value is not None]
    )
    options.update(sized)
    if crop:
        options["crop"] = crop
    options.update({key: value for key, value in named.items() if value is not None})
    return options


@app.command()
def url(
    public_id: str = typer.Argument(..., help="Public id or remote URL"),
    width: Optional[str] = typer.Option(None, "--width", "-w", help="Width in pixels or 'auto'"),
    height: Optional[str] = typer.Option(None, "--height", "-h", help="Height in pixels"),
    crop: Optional[str] = typer.Option(None, "--crop", "-c", help="Crop mode (scale, fill, limit, ...)"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Delivery format (jpg, png, webp)"),
    type: Optional[str] = typer.Option(None, "--type", "-t", help="Delivery type (upload, fetch, ...)"),
    resource_type: Optional[str] = typer.Option(None, "--resource-type", "-r", help="image, raw or video"),
    effect: Optional[str] = typer.Option(None, "--effect", "-e", help="Effect, e.g. sepia or sepia:10"),
    transformation: Optional[str] = typer.Option(None, "--transformation", help="Named transformation"),
    dpr: Optional[str] = typer.Option(None, "--dpr", help="Device pixel ratio or 'auto'"),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Asset version"),
    secure: Optional[bool] = typer.Option(None, "--secure/--insecure", help="Force https or http"),
    option: Optional[list[str]] = typer.Option(None, "--option", "-o", help="Extra option as key=value"),
    output_format: str = typer.Option("plain", "--output-format", help="Output format: plain|markdown|html"),
    cloud_name: Optional[str] = typer.Option(None, "--cloud-name", help="Override cloud_name"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to a JSON config file"),
    copy: bool = typer.Option(True, "--copy/--no-copy", help="Copy the URL to the clipboard"),
) -> None:
    """Print the delivery URL for a public id."""
    try:
        client = make_client(cloud_name, config_file)
        options = collect_options(
            width, height, crop, option,
            format=format,
            type=type,
            resource_type=resource_type,
            effect=effect,
            transformation=transformation,
            dpr=dpr,
            version=version,
            secure=secure,
        )
        result = client.build(public_id, options)
    except ConfigError as e:
        print_error(f"Configuration error: {e}")
        raise typer.Exit(1)
    except (ValidationError, ValueError) as e:
        print_error(f"Invalid options: {e}")
        raise typer.Exit(1)

    console.print(format_output(result.url, output_format, alt=public_id), soft_wrap=True, markup=False)
    if result.html_attributes:
        hints = ", ".join(f"{k}={v}" for k, v in result.html_attributes.items())
        console.print(f"[dim]img hints: {hints}[/dim]")

    if copy:
        if copy_to_clipboard(result.url):
            console.print("[dim]URL copied to clipboard[/dim]")
        else:
            print_warning("Clipboard not available")


@app.command()
def tag(
    public_id: str = typer.Argument(..., help="Public id of the image"),
    width: Optional[str] = typer.Option(None, "--width", "-w", help="Width in pixels or 'auto'"),
    height: Optional[str] = typer.Option(None, "--height", "-h", help="Height in pixels"),
    crop: Optional[str] = typer.Option(None, "--crop", "-c", help="Crop mode"),
    responsive: bool = typer.Option(False, "--responsive", help="Emit a data-src responsive tag"),
    option: Optional[list[str]] = typer.Option(None, "--option", "-o", help="Extra option as key=value"),
    cloud_name: Optional[str] = typer.Option(None, "--cloud-name", help="Override cloud_name"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to a JSON config file"),
) -> None:
    """Print an img tag for a public id."""
    try:
        client = make_client(cloud_name, config_file)
        options = collect_options(width, height, crop, option, responsive=responsive or None)
        console.print(client.image_tag(public_id, **options), soft_wrap=True, markup=False)
    except ConfigError as e:
        print_error(f"Configuration error: {e}")
        raise typer.Exit(1)
    except (ValidationError, ValueError) as e:
        print_error(f"Invalid options: {e}")
        raise typer.Exit(1)


@app.command("breakpoint")
def breakpoint_cmd(
    widths: list[int] = typer.Argument(..., help="Container widths to snap"),
    breakpoints: Optional[str] = typer.Option(
        None, "--breakpoints", "-b", help="Comma-separated breakpoints (default: steps of 10)"
    ),
) -> None:
    """Show which width each container width snaps to."""
    try:
        policy = sorted(int(v) for v in breakpoints.split(",") if v.strip()) if breakpoints else None
    except ValueError:
        print_error(f"Invalid breakpoints: {breakpoints}")
        raise typer.Exit(1)

    table = Table(title="Breakpoints")
    table.add_column("Container", justify="right")
    table.add_column("Snapped", justify="right", style="green")
    for width in widths:
        table.add_row(str(width), str(apply_breakpoint_policy(policy, width)))
    console.print(table)


@app.command()
def render(
    document: Path = typer.Argument(..., help="HTML document with img[data-src] tags", exists=True),
    cloud_name: Optional[str] = typer.Option(None, "--cloud-name", help="Override cloud_name"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to a JSON config file"),
) -> None:
    """Fill in src attributes and save a _cdn copy of the document."""
    try:
        client = make_client(cloud_name, config_file)
        content = document.read_text()

        images = extract_images(content)
        if not images:
            console.print(f"[yellow]No data-src images found in {document.name}[/yellow]")
            return

        rendered, count = render_document(content, client)
        new_path = save_new_document(document, rendered)
    except ConfigError as e:
        print_error(f"Configuration error: {e}")
        raise typer.Exit(1)
    except ValidationError as e:
        print_error(f"Invalid options: {e}")
        raise typer.Exit(1)

    print_success(f"Rendered {count} of {len(images)} images")
    if count < len(images):
        print_warning("Some auto-width images have no container with a declared width")
    console.print(f"[green]Created:[/green] {new_path.name}")


@app.command("config")
def config_cmd(
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to a JSON config file"),
) -> None:
    """Show the effective configuration."""
    try:
        config = load_config(config_file)
    except ConfigError as e:
        print_error(f"Configuration error: {e}")
        raise typer.Exit(1)

    table = Table(title="cdn-image configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    defaults = Config()
    for key, value in config.as_dict().items():
        style = "dim" if value == getattr(defaults, key) else "bold"
        table.add_row(key, escape(str(value)), style=style)
    console.print(table)

    if not config.cloud_name:
        print_warning("cloud_name is not set (config.json or CLOUDINARY_URL)")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
