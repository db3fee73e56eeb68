"""
Command line entry point.

    audit-agent run report.txt --output ./out
    audit-agent run report.pdf --pdf --from-step 3 --output ./out
    audit-agent ui --port 8501
    audit-agent prompts show
"""

import asyncio
import subprocess
import sys
from pathlib import Path
from typing import Optional

import click

from audit_agent import __version__
from audit_agent.core.pdf_processor import extract_pdf_text
from audit_agent.core.prompts import STEP_DEFINITIONS, default_prompt_templates, get_step_definition
from audit_agent.core.workflow import WorkflowEngine
from audit_agent.database import get_database
from audit_agent.exceptions import AuditAgentError
from audit_agent.models import STEP_IDS, GeoLocation, WorkflowData, WorkflowEvent, WorkflowRun
from audit_agent.settings import settings
from audit_agent.utils.logger import get_logger

logger = get_logger(__name__)

APP_PATH = Path(__file__).parent / "streamlit_app" / "app.py"


def output_file(output_dir: Path, step_id: int) -> Path:
    return output_dir / f"step_{step_id}.md"


def read_text_file(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        raise click.FileError(str(path), hint="not a UTF-8 text file (use --pdf for PDFs)")


def load_input(input_path: Path, is_pdf: bool) -> str:
    """Read the audit report from a text or PDF file."""
    if is_pdf:
        document = extract_pdf_text(input_path.read_bytes())
        click.echo(f"Extracted {document.word_count:,} words from {document.page_count} pages")
        return document.text
    return read_text_file(input_path)


def load_previous_results(data: WorkflowData, output_dir: Optional[Path], start_step: int) -> WorkflowData:
    """Read the outputs of the steps before start_step back from output_dir."""
    if start_step == 1:
        return data
    if output_dir is None:
        raise click.UsageError("--from-step needs --output pointing at the earlier step files")

    for step_id in range(1, start_step):
        path = output_file(output_dir, step_id)
        if not path.exists():
            raise click.UsageError(f"Missing {path}; run the earlier steps first")
        data = data.with_result(step_id, read_text_file(path))
    return data


def echo_event(event: WorkflowEvent):
    if event.type == "step_started":
        click.echo(f"▶ {get_step_definition(event.step_id).title}...")
    elif event.type == "step_completed":
        sources = len(event.result.citations) if event.result else 0
        suffix = f" ({sources} sources)" if sources else ""
        click.echo(f"✓ Step {event.step_id} done{suffix}")
    elif event.type == "step_failed":
        click.echo(f"✗ Step {event.step_id} failed: {event.message}", err=True)
    elif event.type == "workflow_completed":
        click.echo("Workflow complete")


async def _run_workflow(
    data: WorkflowData,
    start_step: int,
    location: Optional[GeoLocation]
) -> WorkflowRun:
    preferences = get_database().load_preferences()
    engine = WorkflowEngine()
    return await engine.run(
        data,
        preferences.prompts,
        location=location,
        start_step=start_step,
        on_event=echo_event
    )


@click.group()
@click.version_option(__version__, prog_name="audit-agent")
def cli():
    """UX Audit Agent: five-step LLM analysis of UX audit reports."""


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--pdf", "is_pdf", is_flag=True, help="Treat INPUT_PATH as a PDF")
@click.option(
    "--output", "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for step_N.md files"
)
@click.option(
    "--from-step", "start_step",
    type=click.IntRange(min(STEP_IDS), max(STEP_IDS)),
    default=1,
    show_default=True,
    help="Resume from this step using earlier step files in --output"
)
@click.option("--lat", "latitude", type=click.FloatRange(-90, 90), help="Latitude for search grounding")
@click.option("--lng", "longitude", type=click.FloatRange(-180, 180), help="Longitude for search grounding")
def run(
    input_path: Path,
    is_pdf: bool,
    output_dir: Optional[Path],
    start_step: int,
    latitude: Optional[float],
    longitude: Optional[float]
):
    """Run the workflow headlessly on INPUT_PATH."""
    if (latitude is None) != (longitude is None):
        raise click.UsageError("--lat and --lng must be given together")
    location = GeoLocation(latitude=latitude, longitude=longitude) if latitude is not None else None

    try:
        data = WorkflowData(audit_report=load_input(input_path, is_pdf))
        data = load_previous_results(data, output_dir, start_step)
        workflow_run = asyncio.run(_run_workflow(data, start_step, location))
    except AuditAgentError as e:
        logger.error(f"Workflow could not run: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    get_database().record_run(workflow_run)

    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)
        # Results from an earlier run must not outlive this one
        for step_id in STEP_IDS:
            if step_id >= start_step:
                output_file(output_dir, step_id).unlink(missing_ok=True)
        for step in workflow_run.steps:
            if step.id >= start_step and step.content:
                output_file(output_dir, step.id).write_text(step.content, encoding="utf-8")
        click.echo(f"Results written to {output_dir}")
    elif workflow_run.status == "completed":
        click.echo(workflow_run.data.step5_result)

    if workflow_run.status != "completed":
        click.echo(f"Error: {workflow_run.error}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--port", default=8501, show_default=True, type=click.IntRange(1, 65535), help="Port to serve on")
@click.option("--host", default="localhost", show_default=True, help="Address to bind")
def ui(port: int, host: str):
    """Launch the Streamlit web interface."""
    logger.info("=" * 80)
    logger.info(f"{settings.app_title} - Streamlit Frontend")
    logger.info("=" * 80)

    if not APP_PATH.exists():
        logger.error(f"Streamlit app not found at: {APP_PATH}")
        sys.exit(1)

    logger.info(f"App path: {APP_PATH}")
    result = subprocess.run([
        sys.executable, "-m", "streamlit", "run",
        str(APP_PATH),
        "--server.port", str(port),
        "--server.address", host,
        "--browser.gatherUsageStats", "false"
    ])
    sys.exit(result.returncode)


@cli.group()
def prompts():
    """Show or reset the stored prompt templates."""


@prompts.command("show")
@click.option("--step", "step_id", type=click.IntRange(min(STEP_IDS), max(STEP_IDS)), help="Only this step")
def show_prompts(step_id: Optional[int]):
    """Print the prompt templates the workflow will use."""
    templates = get_database().load_preferences().prompts
    for definition in STEP_DEFINITIONS:
        if step_id is not None and definition.id != step_id:
            continue
        template = templates.get(definition.id)
        click.echo(click.style(definition.title, bold=True))
        click.echo(f"System role:\n{template.system_role}\n")
        click.echo(f"User prompt:\n{template.user_prompt}\n")


@prompts.command("reset")
@click.confirmation_option(prompt="Reset all prompts to their default values?")
def reset_prompts():
    """Restore the default prompt templates."""
    db = get_database()
    preferences = db.load_preferences()
    db.save_preferences(preferences.model_copy(update={"prompts": default_prompt_templates()}))
    click.echo("Prompts reset to defaults")


if __name__ == "__main__":
    cli()
