# src/chart_lut/cli.py

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from .cube import read_cube
from .data import DEFAULT_CONFIG, DEFAULT_LUT_SIZE, LUT_SIZES
from .engine import generate_lut
from .errors import CalibrationError, EmptyInputError
from .interpolation import STRATEGY_INFO, Strategy
from .patches import PatchSet, summarize_patches
from .presets import QUALITY_COLORS, RATING_COLORS, suggest_strategy
from .range_analysis import RangeAnalyzer, analysis_report, color_temperature

app = typer.Typer(help="Color-chart calibration LUT generator")
console = Console()


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def fail(message) -> None:
    rprint(f"[bold red]Error:[/bold red] {escape(str(message))}")
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Patch data  (JSON)
# ---------------------------------------------------------------------------


def load_config(path: Path) -> dict:
    """Load a JSON patch-data file and return it as a dict."""
    with open(path) as f:
        return json.load(f)


def load_patch_set(cfg: dict, key: str) -> PatchSet:
    """
    Builds one side of the chart pair. A side gives either final colors:

        {"patches": [[r, g, b], ...], "quality": [cv, ...], "skipped": 9}

    or raw sub-samples per patch, which are summarised here:

        {"samples": [[[r, g, b], ...], ...], "skipped": 9}
    """
    side = cfg.get(key)
    if not isinstance(side, dict):
        raise EmptyInputError(f"No '{key}' patch data in config.")
    skipped = side.get("skipped", 0)
    if "samples" in side:
        return summarize_patches(side["samples"], skipped)
    if "patches" in side:
        return PatchSet(side["patches"], side.get("quality"), skipped)
    raise EmptyInputError(f"'{key}' needs either 'patches' or 'samples'.")


def write_report(path: Path, report: dict) -> None:
    with open(path, "w") as f:
        json.dump(report, f, indent=2)
    console.print(f"  [green]✓[/green] Report saved to [bold]{path}[/bold]")


# ---------------------------------------------------------------------------
# Numbered selection helper
# ---------------------------------------------------------------------------


def numbered_choice(title: str, options: list[str]) -> str:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Num", style="bold cyan", justify="right")
    table.add_column("Option")
    for i, opt in enumerate(options, 1):
        table.add_row(str(i), opt)
    console.print(table)

    while True:
        raw = Prompt.ask(f"{title} [1-{len(options)}]")
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            chosen = options[int(raw) - 1]
            console.print(f"  → [bold green]{chosen}[/bold green]\n")
            return chosen
        console.print(f"  [red]Enter a number between 1 and {len(options)}.[/red]")


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def swatch(hex_color: str) -> Text:
    return Text("██", style=f"bold {hex_color}")


def print_quality(label: str, patches: PatchSet) -> None:
    q = patches.summary()
    console.print(
        Text.assemble(
            (f"  {label:<10}", "bold"),
            f"{q['total']} patches  ",
            swatch(QUALITY_COLORS["excellent"]),
            f" {q['excellent']}  ",
            swatch(QUALITY_COLORS["good"]),
            f" {q['good']}  ",
            swatch(QUALITY_COLORS["poor"]),
            f" {q['poor']}  ",
            (f"avg CV {q['avg_cv']:.4f}", "dim"),
        )
    )


def print_range_table(ref_stats, cam_stats) -> None:
    table = Table(title="Luminance Range", box=None, padding=(0, 3))
    table.add_column("", style="dim", justify="right")
    table.add_column("Reference", justify="right")
    table.add_column("Camera", justify="right")

    def row(name, fmt):
        table.add_row(name, fmt(ref_stats), fmt(cam_stats))

    row("range", lambda s: f"{s.robust_min:.3f} - {s.robust_max:.3f}")
    row("span", lambda s: f"{s.range:.3f}")
    row("mean", lambda s: f"{s.mean:.3f}")
    row("median", lambda s: f"{s.median:.3f}")
    row("std", lambda s: f"{s.std:.3f}")
    row("dynamic", lambda s: f"{s.dynamic_range:.1f}:1")
    row(
        "quality",
        lambda s: f"[{RATING_COLORS[s.quality.rating]}]{s.quality.rating}[/] ({s.quality.score:.2f})",
    )
    console.print(table)

    for label, stats in (("Reference", ref_stats), ("Camera", cam_stats)):
        for issue in stats.quality.issues:
            console.print(f"  [yellow]![/yellow] {label}: {issue}")


def print_compatibility(mapping) -> None:
    compat = mapping.compatibility
    color = RATING_COLORS[compat.rating]
    console.print(
        f"\n  [bold]Compatibility[/bold]  [{color}]{compat.rating}[/] "
        f"({compat.score:.2f})  [dim]scale {mapping.scale:.3f}, "
        f"offset {mapping.offset:+.3f}, mode {mapping.recommended_mode}[/dim]"
    )
    for issue in compat.issues:
        console.print(f"  [yellow]![/yellow] {issue}")
    console.print(f"  [dim]{compat.recommendation}[/dim]")


# ---------------------------------------------------------------------------
# strategies command
# ---------------------------------------------------------------------------


@app.command()
def strategies():
    """List the available interpolation strategies."""
    table = Table(title="Interpolation Strategies", box=None, padding=(0, 3))
    table.add_column("#", style="bold cyan", justify="right")
    table.add_column("Strategy", style="white")
    table.add_column("Name")
    table.add_column("Description", style="dim")

    for i, (strategy, info) in enumerate(STRATEGY_INFO.items(), 1):
        table.add_row(str(i), strategy.value, info["name"], info["description"])

    console.print()
    console.print(table)
    console.print()


# ---------------------------------------------------------------------------
# analyze command
# ---------------------------------------------------------------------------


@app.command()
def analyze(
    config: Path = typer.Option(
        ...,
        "--config",
        "-c",
        help="JSON file with reference and camera patch data.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    report: Optional[Path] = typer.Option(
        None, "--report", "-r", help="Write the analysis as JSON to this file."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
):
    """Compare the luminance ranges of the two captures without building a LUT."""
    setup_logging(verbose)
    try:
        cfg = load_config(config)
        reference = load_patch_set(cfg, "reference")
        camera = load_patch_set(cfg, "camera")

        analyzer = RangeAnalyzer(DEFAULT_CONFIG)
        ref_stats = analyzer.analyze(reference)
        cam_stats = analyzer.analyze(camera)
        mapping = analyzer.map_ranges(ref_stats, cam_stats)
        temperature = color_temperature(reference.colors, camera.colors)
    except (CalibrationError, json.JSONDecodeError) as e:
        fail(e)

    console.print()
    print_quality("Reference", reference)
    print_quality("Camera", camera)
    console.print()
    print_range_table(ref_stats, cam_stats)
    print_compatibility(mapping)
    console.print(
        f"\n  [bold]White balance[/bold]  shift {temperature['color_temperature_shift']:+.3f}  "
        f"[dim]{temperature['recommendation']}[/dim]"
    )

    suggested = Strategy.parse(suggest_strategy(mapping.compatibility_score))
    console.print(
        f"\n  Suggested strategy: [bold green]{suggested.value}[/bold green] "
        f"[dim]({suggested.label})[/dim]\n"
    )

    if report is not None:
        data = analysis_report(ref_stats, cam_stats, mapping)
        data["color_temperature"] = temperature
        data["suggested_strategy"] = suggested.value
        write_report(report, data)


# ---------------------------------------------------------------------------
# inspect command
# ---------------------------------------------------------------------------


@app.command(name="inspect")
def inspect_cube(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
):
    """Print the header and value ranges of a .cube file."""
    try:
        lut = read_cube(path)
    except ValueError as e:
        fail(e)

    table = lut["table"]
    summary = Table(show_header=False, box=None, padding=(0, 1))
    summary.add_column("Key", style="dim", justify="right")
    summary.add_column("Value")
    summary.add_row("file", f"[bold]{path}[/bold]")
    summary.add_row("title", lut["title"] or "[dim]none[/dim]")
    summary.add_row("cube", f"{lut['size']}³  [dim]({len(table)} entries)[/dim]")
    for ch, name in enumerate(("red", "green", "blue")):
        summary.add_row(
            name, f"{table[:, ch].min():.4f} - {table[:, ch].max():.4f}"
        )
    console.print(summary)


# ---------------------------------------------------------------------------
# Main command
# ---------------------------------------------------------------------------


@app.command()
def build(
    config: Path = typer.Option(
        ...,
        "--config",
        "-c",
        help="JSON file with reference and camera patch data.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    strategy: Optional[str] = typer.Option(
        None, "--strategy", "-s", help="standard, rangeAware, tetrahedral or perceptual."
    ),
    size: Optional[int] = typer.Option(None, "--size", "-n", help="LUT cube size."),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output .cube filename."),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        "-d",
        help="Directory to write the .cube file into. Created if it doesn't exist.",
    ),
    report: Optional[Path] = typer.Option(
        None, "--report", "-r", help="Write the range analysis as JSON to this file."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
):
    """
    Generate a calibration LUT from a reference / camera chart pair.

    Values missing from both the options and the config file are asked for
    interactively:

        chart-lut build --config chart.json --strategy rangeAware --size 33
    """
    setup_logging(verbose)

    def resolve_output(filename: str) -> str:
        """Ensure .cube extension, prepend output_dir if provided."""
        p = Path(filename)
        if p.suffix.lower() != ".cube":
            p = p.with_suffix(".cube")
        if output_dir is not None:
            output_dir.mkdir(parents=True, exist_ok=True)
            return str(output_dir / p.name)
        return str(p)

    console.print(Panel.fit("[bold cyan]Chart LUT[/bold cyan]"))

    try:
        cfg = load_config(config)
        reference = load_patch_set(cfg, "reference")
        camera = load_patch_set(cfg, "camera")
    except (CalibrationError, json.JSONDecodeError) as e:
        fail(e)

    print_quality("Reference", reference)
    print_quality("Camera", camera)
    console.print()

    # ------------------------------------------------------------------
    # Strategy & size: option, then config file, then prompt
    # ------------------------------------------------------------------
    strategy = strategy or cfg.get("strategy")
    if strategy is None:
        analyzer = RangeAnalyzer(DEFAULT_CONFIG)
        try:
            score = analyzer.compatibility(
                analyzer.analyze(reference), analyzer.analyze(camera)
            ).score
        except CalibrationError as e:
            fail(e)
        console.print(
            f"[bold]Interpolation Strategy:[/bold]  [dim]compatibility {score:.2f}, "
            f"suggested {suggest_strategy(score)}[/dim]"
        )
        result = numbered_choice(
            "Select", [f"{s.value:<12} {s.label}" for s in Strategy]
        )
        strategy = result.split()[0]

    try:
        strategy = Strategy.parse(strategy)
    except CalibrationError as e:
        fail(e)

    size = size or cfg.get("size")
    if size is None:
        console.print("[bold]LUT Cube Size:[/bold]")
        result = numbered_choice(
            "Select",
            [f"{n} (Recommended)" if n == DEFAULT_LUT_SIZE else str(n) for n in LUT_SIZES],
        )
        size = int(result.split()[0])

    output_filename = resolve_output(
        output or cfg.get("output", f"calibration_{strategy.value}_{size}.cube")
    )

    summary = Table(show_header=False, box=None, padding=(0, 1))
    summary.add_column("Key", style="dim", justify="right")
    summary.add_column("Value")
    summary.add_row("config", f"[bold]{config}[/bold]")
    summary.add_row("patches", f"{len(reference)}  [dim]({reference.skipped} markers skipped)[/dim]")
    summary.add_row("strategy", f"{strategy.value}  [dim]{strategy.label}[/dim]")
    summary.add_row("cube", f"{size}³")
    summary.add_row("output", f"[bold]{output_filename}[/bold]")
    console.print(summary)
    console.print()

    with console.status("[bold green]Generating LUT..."):
        try:
            result = generate_lut(
                reference,
                camera,
                strategy,
                size,
                output_filename=output_filename,
                title=cfg.get("title"),
            )
        except CalibrationError as e:
            fail(e)

    rprint(f"\n[bold green]✓ Done![/bold green]  {result.output_path}")
    console.print(
        f"  [dim]Chart fit: mean ΔE {result.fit.mean_delta_e:.2f}, "
        f"max ΔE {result.fit.max_delta_e:.2f}[/dim]"
    )
    if result.range_mapping is not None:
        print_compatibility(result.range_mapping)

    if report is not None:
        mapping = result.range_mapping
        if mapping is None:
            analyzer = RangeAnalyzer(DEFAULT_CONFIG)
            mapping = analyzer.map_ranges(
                analyzer.analyze(reference), analyzer.analyze(camera)
            )
        data = analysis_report(mapping.ref_stats, mapping.cam_stats, mapping)
        data["lut"] = {
            "strategy": strategy.value,
            "size": size,
            "output": str(result.output_path),
            "mean_delta_e": round(result.fit.mean_delta_e, 4),
            "max_delta_e": round(result.fit.max_delta_e, 4),
            "entries": len(result.lut),
        }
        write_report(report, data)


if __name__ == "__main__":
    app()
