"""Image and video generation commands."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console

from dramaforge.cli.handler import CLIHandler, format_json
from dramaforge.models.jobs import (
    GenerateImageRequest,
    GenerateVideoRequest,
    ImageGeneration,
    JobStatus,
    ReferenceMode,
    VideoGeneration,
)
from dramaforge.services import DramaBackend

console = Console()

generate_app = typer.Typer(
    name="generate",
    help="Submit image and video generation jobs",
    no_args_is_help=True,
)

WaitOption = Annotated[
    bool,
    typer.Option("--wait", "-w", help="Block until the job reaches a final state"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def _report(record: ImageGeneration | VideoGeneration, kind: str, json_output: bool) -> None:
    if json_output:
        print(format_json(record))
        return
    color = {
        JobStatus.COMPLETED: "green",
        JobStatus.FAILED: "red",
    }.get(record.status, "cyan")
    console.print(f"[{color}]{kind} job {record.id}: {record.status.value}[/{color}]")
    url = record.image_url if isinstance(record, ImageGeneration) else record.video_url
    if url:
        console.print(f"URL: {url}")
    if record.task_id:
        console.print(f"Provider task: {record.task_id}")
    if record.error_msg:
        console.print(f"[red]{record.error_msg}[/red]")
    if record.status is JobStatus.FAILED:
        raise typer.Exit(1)


@generate_app.command("image")
def generate_image(
    drama_id: Annotated[str, typer.Argument(help="Drama ID")],
    prompt: Annotated[str, typer.Argument(help="Image prompt")],
    storyboard_id: Annotated[str | None, typer.Option("--storyboard")] = None,
    scene_id: Annotated[str | None, typer.Option("--scene")] = None,
    character_id: Annotated[int | None, typer.Option("--character")] = None,
    model: Annotated[str | None, typer.Option("--model", "-m")] = None,
    size: Annotated[str | None, typer.Option("--size", help="e.g. 1024x1024")] = None,
    quality: Annotated[str | None, typer.Option("--quality")] = None,
    wait: WaitOption = False,
    json_output: JsonOption = False,
) -> None:
    """Generate an image, optionally targeting one storyboard, scene or character."""
    handler = CLIHandler(console)
    request = GenerateImageRequest(
        drama_id=drama_id,
        prompt=prompt,
        storyboard_id=storyboard_id,
        scene_id=scene_id,
        character_id=character_id,
        model=model,
        size=size,
        quality=quality,
    )

    async def submit(backend: DramaBackend) -> ImageGeneration:
        record = await backend.generate_image(request)
        if not wait:
            return record
        await backend.join()
        return await backend.get_image(record.id)

    try:
        record = handler.run(submit)
    except Exception as e:
        handler.handle_error(e, json_output)
        return
    _report(record, "Image", json_output)


@generate_app.command("video")
def generate_video(
    drama_id: Annotated[str, typer.Argument(help="Drama ID")],
    prompt: Annotated[str, typer.Argument(help="Video prompt")],
    storyboard_id: Annotated[str | None, typer.Option("--storyboard")] = None,
    model: Annotated[str | None, typer.Option("--model", "-m")] = None,
    image_url: Annotated[str | None, typer.Option("--image-url", help="Single reference")] = None,
    first_frame: Annotated[str | None, typer.Option("--first-frame")] = None,
    last_frame: Annotated[str | None, typer.Option("--last-frame")] = None,
    reference: Annotated[
        list[str] | None, typer.Option("--reference", help="Reference image (repeatable)")
    ] = None,
    reference_mode: Annotated[ReferenceMode | None, typer.Option("--reference-mode")] = None,
    duration: Annotated[int | None, typer.Option("--duration", help="Seconds")] = None,
    aspect_ratio: Annotated[str | None, typer.Option("--aspect-ratio")] = None,
    wait: WaitOption = False,
    json_output: JsonOption = False,
) -> None:
    """Generate a video, optionally written onto a storyboard."""
    handler = CLIHandler(console)
    request = GenerateVideoRequest(
        drama_id=drama_id,
        prompt=prompt,
        storyboard_id=storyboard_id,
        model=model,
        reference_mode=reference_mode,
        image_url=image_url,
        first_frame_url=first_frame,
        last_frame_url=last_frame,
        reference_image_urls=reference or None,
        duration=duration,
        aspect_ratio=aspect_ratio,
    )

    async def submit(backend: DramaBackend) -> VideoGeneration:
        record = await backend.generate_video(request)
        if not wait:
            return record
        await backend.join()
        return await backend.get_video(record.id)

    try:
        record = handler.run(submit)
    except Exception as e:
        handler.handle_error(e, json_output)
        return
    _report(record, "Video", json_output)
