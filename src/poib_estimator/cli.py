"""CLI for sight corrections from target photographs or hole coordinates."""

import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from poib_estimator import config
from poib_estimator.models import (
    AxisConvention,
    CoordinateRequest,
    CorrectionResult,
    ImageRequest,
    InchPoint,
    PipelineConfig,
    ProcessingError,
    ProcessingStage,
    TargetSize,
    ThresholdStrategy,
    parse_target_size,
)
from poib_estimator.pipeline import (
    compute_correction,
    internal_error,
    malformed_request,
    result_from_state,
    run_pipeline_async,
)
from poib_estimator.utils import cv_utils

logger = logging.getLogger(__name__)

Outcome = CorrectionResult | ProcessingError


def _to_point(text: str) -> InchPoint:
    try:
        x_text, y_text = text.split(",")
        return InchPoint(x=float(x_text), y=float(y_text))
    except ValueError:
        raise click.BadParameter(f"expected X,Y in inches, got {text!r}") from None


def _point_option(ctx: click.Context, param: click.Parameter, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, tuple):
        return tuple(_to_point(v) for v in value)
    return _to_point(value)


def _target_option(ctx: click.Context, param: click.Parameter, value: str) -> TargetSize:
    size = parse_target_size(value)
    if isinstance(size, ProcessingError):
        raise click.BadParameter(size.message)
    return size


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def render(outcome: Outcome) -> dict[str, Any]:
    """JSON body for an outcome, with an ``ok`` flag for callers that branch on it."""
    if isinstance(outcome, ProcessingError):
        return {"ok": False, "error": outcome.model_dump(mode="json")}
    return {"ok": True, **outcome.model_dump(mode="json")}


def _echo_summary(source: str, outcome: Outcome) -> None:
    if isinstance(outcome, ProcessingError):
        click.echo(
            f"{source}: [{outcome.stage.value}] {outcome.error_type.value}: {outcome.message}",
            err=True,
        )
        return
    click.echo(
        f"{source}: windage {outcome.dial.windage}, elevation {outcome.dial.elevation}",
        err=True,
    )
    for w in outcome.diagnostics.warnings:
        click.echo(f"  Warning: {w}", err=True)


async def process_single_image(
    img_path: Path,
    request_fields: dict[str, Any],
    pipeline_config: PipelineConfig,
    semaphore: asyncio.Semaphore,
) -> tuple[Path, Outcome]:
    """Load, downsample and run one image with semaphore control."""
    async with semaphore:
        logger.info("Processing: %s", img_path)
        gray = cv_utils.load_image(img_path)
        if isinstance(gray, ProcessingError):
            return (img_path, gray)
        gray = cv_utils.downsample_to_limit(gray)
        try:
            request = ImageRequest(
                pixels=cv_utils.pixel_buffer_from_image(gray), **request_fields
            )
        except ValidationError as e:
            return (img_path, malformed_request(e))
        try:
            state = await run_pipeline_async(request, pipeline_config)
        except Exception as e:
            logger.exception("pipeline failed for %s", img_path)
            return (img_path, internal_error(ProcessingStage.INPUT, e))
        return (img_path, result_from_state(state))


async def process_images_concurrent(
    images: tuple[Path, ...],
    request_fields: dict[str, Any],
    pipeline_config: PipelineConfig,
    max_concurrency: int,
) -> AsyncIterator[tuple[Path, Outcome]]:
    """Process images with a bounded in-flight queue and stream completed results."""
    semaphore = asyncio.Semaphore(max_concurrency)
    image_iter = iter(images)
    in_flight: set[asyncio.Task[tuple[Path, Outcome]]] = set()

    def _schedule_next() -> bool:
        try:
            img_path = next(image_iter)
        except StopIteration:
            return False
        task = asyncio.create_task(
            process_single_image(img_path, request_fields, pipeline_config, semaphore)
        )
        in_flight.add(task)
        return True

    initial_workers = min(max_concurrency, len(images))
    for _ in range(initial_workers):
        _schedule_next()

    while in_flight:
        done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
        for completed in done:
            in_flight.remove(completed)
            yield completed.result()
            _schedule_next()


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def main(verbose: bool) -> None:
    """Compute windage and elevation clicks that move a shot group onto the bull."""
    _configure_logging(verbose)


@main.command("image")
@click.argument("images", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output JSON file (single image)")
@click.option("--output-dir", type=click.Path(path_type=Path), help="Output directory (batch mode)")
@click.option(
    "--target",
    default=config.DEFAULT_TARGET_SIZE,
    callback=_target_option,
    show_default=True,
    help='Target paper size in inches, e.g. "8.5x11"',
)
@click.option("--distance", type=float, default=config.DEFAULT_DISTANCE_YARDS, show_default=True, help="Distance in yards")
@click.option("--click", "click_value", type=float, default=config.DEFAULT_CLICK_VALUE_MOA, show_default=True, help="MOA per click")
@click.option("--bull", callback=_point_option, help="Bull position X,Y in inches (default: detected or center)")
@click.option("--deadband", type=float, default=config.DEFAULT_DEADBAND_INCHES, show_default=True, help="Per-axis deadband in inches")
@click.option("--min-shots", type=int, default=config.DEFAULT_MIN_SHOTS, show_default=True)
@click.option("--max-shots", type=int, default=config.DEFAULT_MAX_SHOTS, show_default=True)
@click.option(
    "--strategy",
    type=click.Choice(["border", "crosshair", "corners"]),
    default="border",
    show_default=True,
    help="How to find the target frame",
)
@click.option("--threshold", type=float, default=None, help="Fixed dark threshold (0-255)")
@click.option("--adaptive", is_flag=True, help="Threshold from mean brightness instead of a fixed value")
@click.option("--y-down", is_flag=True, help="Use a Y-down inch space (origin top-left)")
@click.option(
    "--max-concurrency",
    type=int,
    default=config.DEFAULT_MAX_CONCURRENCY,
    show_default=True,
    help="Max concurrent image processing",
)
def image_command(
    images: tuple[Path, ...],
    output: Path | None,
    output_dir: Path | None,
    target: TargetSize,
    distance: float,
    click_value: float,
    bull: InchPoint | None,
    deadband: float,
    min_shots: int,
    max_shots: int,
    strategy: str,
    threshold: float | None,
    adaptive: bool,
    y_down: bool,
    max_concurrency: int,
) -> None:
    """Compute the correction from photographs of paper targets."""
    if not images:
        click.echo("Error: No input images provided", err=True)
        sys.exit(1)

    batch = len(images) > 1 or output_dir is not None

    if batch and output:
        click.echo("Error: Use --output-dir for batch processing", err=True)
        sys.exit(1)
    if adaptive and threshold is not None:
        click.echo("Error: --threshold and --adaptive are mutually exclusive", err=True)
        sys.exit(1)
    if max_concurrency < 1:
        click.echo("Error: --max-concurrency must be >= 1", err=True)
        sys.exit(1)

    if output_dir:
        output_dir.mkdir(parents=True, exist_ok=True)

    if adaptive:
        strategy_threshold = ThresholdStrategy.adaptive()
    elif threshold is not None:
        strategy_threshold = ThresholdStrategy.fixed(threshold)
    else:
        strategy_threshold = ThresholdStrategy.fixed()

    request_fields: dict[str, Any] = {
        "target_size": target,
        "distance_yards": distance,
        "click_value_moa": click_value,
        "bull": bull,
        "deadband_in": deadband,
        "min_shots": min_shots,
        "max_shots": max_shots,
        "threshold": strategy_threshold,
        "frame_strategy": strategy,
        "convention": AxisConvention.Y_DOWN if y_down else AxisConvention.Y_UP,
    }
    pipeline_config = PipelineConfig()

    async def _run() -> tuple[int, int]:
        success_count = 0
        fail_count = 0

        async for img_path, outcome in process_images_concurrent(
            images, request_fields, pipeline_config, max_concurrency
        ):
            body = json.dumps(render(outcome), indent=2)
            if batch:
                out_path = (output_dir or img_path.parent) / f"{img_path.stem}.json"
                out_path.write_text(body)
            elif output:
                output.write_text(body)
            else:
                click.echo(body)

            _echo_summary(str(img_path), outcome)
            if isinstance(outcome, ProcessingError):
                fail_count += 1
            else:
                success_count += 1

        return success_count, fail_count

    success_count, fail_count = asyncio.run(_run())

    if batch:
        click.echo(
            f"Processed {success_count + fail_count} images: "
            f"{success_count} success, {fail_count} failed"
        )

    if fail_count > 0:
        sys.exit(1)


@main.command("coords")
@click.option("--hole", "holes", multiple=True, required=True, callback=_point_option, help="Hole X,Y in inches (repeatable)")
@click.option("--bull", required=True, callback=_point_option, help="Bull X,Y in inches")
@click.option("--distance", type=float, default=config.DEFAULT_DISTANCE_YARDS, show_default=True, help="Distance in yards")
@click.option("--click", "click_value", type=float, default=config.DEFAULT_CLICK_VALUE_MOA, show_default=True, help="MOA per click")
@click.option("--deadband", type=float, default=config.DEFAULT_DEADBAND_INCHES, show_default=True, help="Per-axis deadband in inches")
@click.option("--y-down", is_flag=True, help="Coordinates use Y-down (origin top-left)")
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output JSON file")
def coords_command(
    holes: tuple[InchPoint, ...],
    bull: InchPoint,
    distance: float,
    click_value: float,
    deadband: float,
    y_down: bool,
    output: Path | None,
) -> None:
    """Compute the correction from hole coordinates measured in inches."""
    request = CoordinateRequest(
        holes=list(holes),
        bull=bull,
        distance_yards=distance,
        click_value_moa=click_value,
        deadband_in=deadband,
        convention=AxisConvention.Y_DOWN if y_down else AxisConvention.Y_UP,
    )
    outcome = compute_correction(request)
    body = json.dumps(render(outcome), indent=2)
    if output:
        output.write_text(body)
    else:
        click.echo(body)

    _echo_summary("coords", outcome)
    if isinstance(outcome, ProcessingError):
        sys.exit(1)


if __name__ == "__main__":
    main()
