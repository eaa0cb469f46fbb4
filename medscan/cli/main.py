"""CLI tool for identifying medicines from images, names and the camera"""
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import click
from tqdm import tqdm

from medscan.core.agent import MedicineAgent
from medscan.core.config import Config, configure_logging
from medscan.core.controller import MedScanController
from medscan.services.camera import CV2Camera
from medscan.services.image_processor import ImageProcessor
from medscan.services.output_service import OutputService
from medscan.types.medicine import AnalysisResult
from medscan.cli.views import render_record, render_state

SESSION_HELP = """Type a medicine name to see suggestions, then:
  /search        look up the typed name
  /pick N        look up suggestion number N
  /related N     look up related medicine number N on the result
  /camera        open or close the camera
  /capture       analyze the product in front of the camera
  /retry         request camera access again
  /clear         start over
  /quit          exit"""


def _build_agent() -> MedicineAgent:
    return MedicineAgent()


def _validate_config() -> None:
    try:
        Config.validate()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO)")
def cli(log_level: Optional[str]):
    """Identify medicines from packaging photos or names."""
    configure_logging(log_level)


@cli.command()
@click.argument("input_path", type=click.Path(exists=True))
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default=None,
    help="Output directory for results (default: ./results)"
)
@click.option(
    "--parallel",
    "-p",
    type=int,
    default=None,
    help=f"Number of concurrent requests (default: {Config.MAX_WORKERS})"
)
@click.option(
    "--recursive",
    "-r",
    is_flag=True,
    help="Process directories recursively"
)
@click.option(
    "--summary/--no-summary",
    default=True,
    help="Generate summary file"
)
def identify(input_path: str, output: Optional[str], parallel: Optional[int], recursive: bool, summary: bool):
    """
    Identify medicines in image files.

    INPUT_PATH can be a single image file or a directory containing images.
    """
    _validate_config()

    input_path_obj = Path(input_path)
    output_dir = Path(output) if output else Config.OUTPUT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)

    # Find images
    if input_path_obj.is_file():
        images = [input_path_obj] if ImageProcessor.is_image_file(input_path_obj) else []
    else:
        images = ImageProcessor.find_images(input_path_obj, recursive=recursive)

    if not images:
        click.echo(f"No valid images found in: {input_path}", err=True)
        sys.exit(1)

    click.echo(f"Found {len(images)} image(s) to process")

    agent = _build_agent()
    results = asyncio.run(_identify_all(agent, images, parallel or Config.MAX_WORKERS, output_dir, input_path_obj))

    if summary:
        summary_path = OutputService.save_batch_summary(results, output_dir)
        click.echo(f"\nSummary saved to: {summary_path}")

    successful = sum(1 for r in results if r.success)
    click.echo(f"\n{'='*50}")
    click.echo("Identification complete!")
    click.echo(f"Total images: {len(results)}")
    click.echo(f"Identified: {successful}")
    click.echo(f"Failed: {len(results) - successful}")
    click.echo(f"Results saved to: {output_dir}")
    click.echo(f"{'='*50}")


def _relative_name(image_path: Path, input_root: Path) -> str:
    if input_root.is_dir():
        return image_path.relative_to(input_root).as_posix()
    return image_path.name


async def _identify_all(
    agent: MedicineAgent,
    images: List[Path],
    max_workers: int,
    output_dir: Path,
    input_root: Path
) -> List[AnalysisResult]:
    semaphore = asyncio.Semaphore(max_workers)

    async def run(image_path: Path):
        async with semaphore:
            return image_path, await agent.identify_file(image_path)

    results = []
    with tqdm(total=len(images), desc="Identifying") as pbar:
        for next_done in asyncio.as_completed([run(img) for img in images]):
            image_path, result = await next_done
            results.append(result)
            OutputService.save_result(result, output_dir, _relative_name(image_path, input_root))

            if result.success:
                pbar.set_postfix_str(f"✓ {image_path.name}: {result.record.brand_name}")
            else:
                pbar.set_postfix_str(f"✗ {image_path.name}: {result.error}")
            pbar.update(1)

    return results


@cli.command()
@click.argument("name")
def lookup(name: str):
    """Show clinical information for a medicine NAME."""
    _validate_config()
    result = asyncio.run(_build_agent().lookup(name))
    if not result.success:
        click.echo(f"Error: {result.error}", err=True)
        sys.exit(1)
    click.echo(render_record(result.record))


@cli.command()
@click.argument("query")
def suggest(query: str):
    """List medicine names matching QUERY."""
    _validate_config()
    names = asyncio.run(_build_agent().gemini_service.suggest(query))
    for name in names:
        click.echo(name)


@cli.command()
@click.option("--camera-index", type=int, default=None, help="OpenCV camera device (default: CAMERA_INDEX or 0)")
def session(camera_index: Optional[int]):
    """Interactive search and camera session."""
    _validate_config()
    agent = _build_agent()
    controller = MedScanController(agent.gemini_service, camera=CV2Camera(index=camera_index))
    asyncio.run(_run_session(controller))


async def _run_session(controller: MedScanController) -> None:
    click.echo(SESSION_HELP)
    try:
        while True:
            click.echo("")
            click.echo(render_state(controller.state))
            try:
                line = await asyncio.to_thread(click.prompt, ">", default="", show_default=False)
            except click.exceptions.Abort:
                break
            line = line.strip()

            if line in ("/quit", "/exit"):
                break
            elif line == "/search":
                await controller.submit_query()
            elif line.startswith("/pick"):
                await _pick(controller, line)
            elif line.startswith("/related"):
                await _related(controller, line)
            elif line == "/camera":
                await controller.toggle_camera()
            elif line == "/capture":
                await controller.capture()
            elif line == "/retry":
                await controller.retry_camera()
            elif line == "/clear":
                controller.clear()
            elif line.startswith("/"):
                click.echo(f"Unknown command: {line}")
            else:
                controller.set_query(line)
                await controller.settle_suggestions()
    finally:
        await controller.aclose()


async def _pick(controller: MedScanController, line: str) -> None:
    _, _, number = line.partition(" ")
    suggestions = controller.state.suggestions
    if not number.strip().isdigit() or not 1 <= int(number) <= len(suggestions):
        click.echo("Pick a listed suggestion number, e.g. /pick 1")
        return
    await controller.pick_suggestion(suggestions[int(number) - 1])


async def _related(controller: MedScanController, line: str) -> None:
    _, _, number = line.partition(" ")
    record = controller.state.active_record
    related = record.related_medicines if record else []
    if not number.strip().isdigit() or not 1 <= int(number) <= len(related):
        click.echo("Pick a listed related medicine number, e.g. /related 1")
        return
    await controller.search_related(related[int(number) - 1])


if __name__ == "__main__":
    cli()
