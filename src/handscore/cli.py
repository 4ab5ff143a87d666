"""Main CLI entry point."""

import json
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from handscore.analysis import HandwritingAnalysis
from handscore.config import MAX_SIZE, Config, PreprocessSettings, Provider
from handscore.errors import ComputeError, PreprocessError, ScoringError
from handscore.preprocessing import binarize, encode_payload, save_image
from handscore.providers.anthropic import AnthropicProvider
from handscore.providers.openai import OpenAIProvider

console = Console(stderr=True)
output = Console(highlight=False, soft_wrap=True)
load_dotenv()

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp", ".tif", ".tiff"}


@click.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--provider", "-p",
    type=click.Choice(["anthropic", "openai"], case_sensitive=False),
    default="anthropic",
    show_default=True,
    help="LLM provider used to score the handwriting.",
)
@click.option(
    "--model", "-m",
    default=None,
    help="Model name override (defaults to best vision model for the provider).",
)
@click.option(
    "--api-key",
    default=None,
    help="API key (overrides environment variable).",
)
@click.option(
    "--max-size",
    type=click.IntRange(min=1),
    default=MAX_SIZE,
    show_default=True,
    help="Cap on the longer image side before binarization. Smaller images are not upscaled.",
)
@click.option(
    "--blur-radius",
    type=click.FloatRange(min=0),
    default=0.5,
    show_default=True,
    help="Gaussian denoise radius in pixels. 0 disables denoising.",
)
@click.option(
    "--sensitivity",
    type=click.FloatRange(min=0, max=1, max_open=True),
    default=0.15,
    show_default=True,
    help="How much darker than its neighbourhood a pixel must be to count as ink.",
)
@click.option(
    "--quality",
    type=click.IntRange(1, 100),
    default=90,
    show_default=True,
    help="JPEG quality of the image sent to the scorer.",
)
@click.option(
    "--save-binarized",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write the binarized image to this path (PNG).",
)
@click.option(
    "--preprocess-only",
    is_flag=True,
    default=False,
    help="Run preprocessing only; do not call the scorer.",
)
@click.option(
    "--json", "as_json",
    is_flag=True,
    default=False,
    help="Print the analysis as JSON.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.version_option(package_name="handscore")
def main(
    input_path, provider, model, api_key, max_size, blur_radius, sensitivity, quality,
    save_binarized, preprocess_only, as_json, verbose,
):
    """Score a photographed handwriting sample against the Shuyao Hengshui style.

    INPUT_PATH can be a .png, .jpg, .jpeg, .webp, .gif, .bmp or .tiff file.
    The photo is binarized locally before it is sent to the scorer.
    """
    _configure_logging(verbose)

    suffix = input_path.suffix.lower()
    if suffix not in IMAGE_EXTENSIONS:
        console.print(f"[red]Unsupported file type:[/red] {suffix}")
        sys.exit(1)

    config = None
    if not preprocess_only:
        try:
            config = Config.from_env(
                provider=Provider(provider),
                model_override=model,
                api_key_override=api_key,
            )
        except RuntimeError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)

    settings = PreprocessSettings(
        max_size=max_size,
        blur_radius=blur_radius,
        sensitivity=sensitivity,
        quality=quality,
    )

    try:
        image_bytes = input_path.read_bytes()
    except OSError as e:
        console.print(f"[red]Could not read {input_path}:[/red] {e}")
        sys.exit(1)

    try:
        with console.status("[cyan]Binarizing image..."):
            binary = binarize(image_bytes, settings)
            payload = encode_payload(binary, settings)
    except ComputeError as e:
        console.print(f"[red]Internal error while preprocessing:[/red] {e}")
        sys.exit(1)
    except PreprocessError as e:
        console.print(f"[red]Could not read image:[/red] {e}")
        sys.exit(1)

    console.print(
        f"[dim]{payload.width}x{payload.height}, {binary.ink_ratio:.1%} ink, "
        f"{payload.size_bytes / 1024:.1f} KiB {payload.mime_type}[/dim]"
    )
    if save_binarized:
        try:
            save_image(binary, save_binarized)
        except (OSError, PreprocessError) as e:
            console.print(f"[red]Could not write {save_binarized}:[/red] {e}")
            sys.exit(1)
        console.print(f"[green]Binarized image written to {save_binarized}[/green]")

    if preprocess_only:
        return

    provider_obj = _build_provider(config)

    try:
        with console.status(f"[cyan]Scoring via {provider} ({config.model})..."):
            analysis = provider_obj.score(payload)
    except ScoringError as e:
        console.print(f"[red]Scoring failed:[/red] {e}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(analysis.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_analysis(analysis)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _print_analysis(analysis: HandwritingAnalysis) -> None:
    if analysis.is_passing:
        verdict = "[bold green]PASS[/bold green]"
    else:
        verdict = "[bold yellow]NOT YET[/bold yellow]"
    output.print(f"[bold]Score:[/bold] {analysis.score:g}/100 ({verdict})")
    for title, items in (
        ("Feedback", analysis.feedback),
        ("Strengths", analysis.strengths),
        ("Improvements", analysis.improvements),
    ):
        if items:
            output.print(f"\n[bold]{title}:[/bold]")
            for item in items:
                output.print(f"  - {escape(item)}")


def _build_provider(config: Config):
    if config.provider == Provider.ANTHROPIC:
        return AnthropicProvider(api_key=config.api_key, model=config.model)
    elif config.provider == Provider.OPENAI:
        return OpenAIProvider(api_key=config.api_key, model=config.model)
    else:
        raise ValueError(f"Unknown provider: {config.provider}")
