"""
CLI interface using Click.
"""

import sys
from pathlib import Path
from typing import Optional, Tuple

import click
import yaml
from PIL import Image
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.syntax import Syntax

from scrollshot import __version__
from scrollshot.config import (
    ConfigurationError,
    ScrollshotConfig,
    get_default_config_path,
    load_config,
    save_config,
)
from scrollshot.logging import setup_logging, get_logger
from scrollshot.actuator import (
    ScreenshotCapture,
    ScrollInjector,
    get_screen,
    get_screen_info,
)
from scrollshot.runner import CaptureResult, CaptureRunner
from scrollshot.safety.stopswitch import StopSwitch
from scrollshot.session import ScrollCaptureSession
from scrollshot.sinks import FileSink
from scrollshot.state import CapturedFrame, Point, Rect
from scrollshot.stitching import PixelizeError, detect_overlap
from scrollshot.stitching.stitcher import stitch_with_report

console = Console()
logger = get_logger(__name__)


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, version: bool, verbose: bool) -> None:
    """scrollshot - scrolling screen capture and stitching."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    if verbose:
        setup_logging(level="DEBUG")
    else:
        setup_logging(level="INFO")

    if version:
        console.print(f"scrollshot v{__version__}")
        sys.exit(0)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


def _load_config_or_exit(config_path: Optional[str]) -> ScrollshotConfig:
    try:
        app_config = load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)

    ctx = click.get_current_context()
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    setup_logging(
        level="DEBUG" if verbose else app_config.logging.level,
        log_file=Path(app_config.logging.file) if app_config.logging.file else None,
    )
    return app_config


def _print_status(event: str, **details) -> None:
    if event == "frame_captured":
        overlap = details.get("overlap")
        suffix = f" (overlap {overlap} rows)" if overlap is not None else ""
        console.print(f"[green]Frame {details['frame']} captured{suffix}[/green]")
    elif event == "capture_retry":
        console.print(f"[yellow]Capture skipped ({details.get('cause')}), retrying[/yellow]")
    elif event == "stopped":
        console.print(f"[cyan]Stopped: {details['reason'].value}[/cyan]")


def _print_result(result: CaptureResult, path: Optional[Path]) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Frames", str(result.frames))
    table.add_row("Scroll steps", str(result.steps))
    table.add_row("Stop reason", result.stop_reason.value if result.stop_reason else "-")
    table.add_row("Overlaps", ", ".join(str(o) for o in result.overlaps) or "-")
    table.add_row("Size", f"{result.width} x {result.height}")
    table.add_row("Duration", f"{result.duration_ms} ms")
    if path:
        table.add_row("Saved to", str(path))
    console.print(Panel(table, title="Scrolling capture"))

    if result.unmatched_pairs:
        console.print(
            f"[yellow]No overlap found for {len(result.unmatched_pairs)} frame pair(s); "
            "those frames were appended whole and may repeat content.[/yellow]"
        )


@main.command()
@click.option("--region", "-r", required=True, help="Selection as X,Y,WIDTH,HEIGHT in logical points")
@click.option("--display", "-d", type=int, default=None, help="Display index (default: from config)")
@click.option("--scale", type=float, default=None, help="Logical to pixel scale (default: detected)")
@click.option("--max-steps", "-n", type=int, default=None, help="Maximum scroll steps")
@click.option("--delay", type=float, default=None, help="Settle delay between ticks in seconds")
@click.option("--output", "-o", type=click.Path(), default=None, help="Output PNG path")
@click.option("--dry-run", is_flag=True, help="Log actions without scrolling or grabbing the screen")
@click.option("--config", "-c", type=click.Path(), help="Path to config file")
def capture(
    region: str,
    display: Optional[int],
    scale: Optional[float],
    max_steps: Optional[int],
    delay: Optional[float],
    output: Optional[str],
    dry_run: bool,
    config: Optional[str],
) -> None:
    """Scroll a region and stitch it into one tall image."""
    app_config = _load_config_or_exit(config)

    try:
        selection = Rect.parse(region)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--region")

    if max_steps is not None:
        app_config.capture.max_steps = max_steps
    if delay is not None:
        app_config.capture.settle_delay = delay
    dry_run = dry_run or app_config.safety.dry_run

    display_id = display if display is not None else app_config.capture.display
    screen = get_screen(display_id)
    if screen is None and not dry_run:
        console.print(f"[red]Display {display_id} not found. Run 'scrollshot screens'.[/red]")
        sys.exit(2)

    scale_factor = scale or (screen.scale_factor if screen else 1.0)
    origin = screen.origin if screen else Point(0.0, 0.0)

    stop_switch = StopSwitch(hotkey=app_config.safety.stop_hotkey)
    session = ScrollCaptureSession.from_config(
        selection,
        scale_factor,
        origin,
        app_config.capture,
        capture_service=ScreenshotCapture(dry_run=dry_run),
        scroll_service=ScrollInjector(
            pixels_per_click=app_config.capture.pixels_per_click,
            dry_run=dry_run,
            stop_check=lambda: stop_switch.triggered,
        ),
        display_id=display_id,
        on_status=_print_status,
    )
    sink = FileSink(
        app_config.output.path,
        prefix=app_config.output.filename_prefix,
        path=output,
    )
    runner = CaptureRunner(session, sink=sink, stop_switch=stop_switch)

    console.print(
        f"Capturing {selection.width:g}x{selection.height:g} on display {display_id} "
        f"(scale {scale_factor:g}). Press [bold]{app_config.safety.stop_hotkey}[/bold] to stop."
    )

    stop_switch.start()
    try:
        result = runner.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        result = runner.finish()
    finally:
        stop_switch.stop()

    _print_result(result, sink.last_path)
    if not result.success:
        console.print("[red]Nothing captured.[/red]")
        sys.exit(1)


def _load_frames(paths: Tuple[str, ...]) -> list[CapturedFrame]:
    frames = []
    for i, path in enumerate(paths):
        try:
            with Image.open(path) as img:
                img.load()
                frames.append(CapturedFrame.from_image(img, index=i))
        except (OSError, PixelizeError) as e:
            raise click.ClickException(f"Cannot read frame {path}: {e}")
    return frames


@main.command()
@click.argument("frames", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", required=True, type=click.Path(dir_okay=False), help="Output PNG path")
def stitch(frames: Tuple[str, ...], output: str) -> None:
    """Stitch previously captured frames (in scroll order)."""
    loaded = _load_frames(frames)

    try:
        report = stitch_with_report(loaded)
    except ValueError as e:
        raise click.ClickException(str(e))

    table = Table(title="Overlaps")
    table.add_column("Pair")
    table.add_column("Rows", justify="right")
    for i, overlap in enumerate(report.overlaps):
        style = "yellow" if overlap == 0 else None
        table.add_row(f"{Path(frames[i]).name} -> {Path(frames[i + 1]).name}", str(overlap), style=style)
    if report.overlaps:
        console.print(table)

    if report.image is None:
        console.print("[red]Nothing to stitch.[/red]")
        sys.exit(1)

    FileSink(Path(output).parent, path=output).open_image(report.image, report.width, report.height)
    console.print(f"[green]Saved {report.width}x{report.height} image to {output}[/green]")


@main.command()
@click.argument("first", type=click.Path(exists=True, dir_okay=False))
@click.argument("second", type=click.Path(exists=True, dir_okay=False))
def overlap(first: str, second: str) -> None:
    """Show the detected overlap between two frames."""
    a, b = _load_frames((first, second))
    if (a.width, a.height) != (b.width, b.height):
        raise click.ClickException(
            f"Frames differ in size: {a.width}x{a.height} vs {b.width}x{b.height}"
        )

    match = detect_overlap(a.rgba, b.rgba, a.width, a.height)
    if match.found:
        console.print(
            f"Overlap: [bold]{match.rows}[/bold] of {a.height} rows "
            f"(tier: {match.tier.value}, score: {match.score:.2f})"
        )
    else:
        console.print("[yellow]No reliable overlap found[/yellow]")


@main.command()
def screens() -> None:
    """List displays."""
    infos = get_screen_info()
    if not infos:
        console.print("[red]No displays found[/red]")
        sys.exit(1)

    table = Table(title="Displays")
    table.add_column("Index", justify="right")
    table.add_column("Origin")
    table.add_column("Size")
    table.add_column("Scale", justify="right")
    table.add_column("Primary")
    for info in infos:
        table.add_row(
            str(info.index),
            f"{info.x},{info.y}",
            f"{info.width}x{info.height}",
            f"{info.scale_factor:g}",
            "yes" if info.is_primary else "",
        )
    console.print(table)


@main.command(name="config")
@click.option("--init", "init_", is_flag=True, help="Write a default config file")
@click.option("--config", "-c", type=click.Path(), help="Path to config file")
def config_cmd(init_: bool, config: Optional[str]) -> None:
    """Show the effective configuration or write a default one."""
    if init_:
        path = Path(config).expanduser() if config else get_default_config_path()
        if path.exists():
            console.print(f"[yellow]Config already exists: {path}[/yellow]")
            sys.exit(1)
        saved = save_config(ScrollshotConfig(), str(path))
        console.print(f"[green]Wrote default config to {saved}[/green]")
        return

    app_config = _load_config_or_exit(config)
    text = yaml.safe_dump(app_config.model_dump(), default_flow_style=False)
    console.print(Syntax(text, "yaml"))


if __name__ == "__main__":
    main()
