"""
Command-line interface for willforge.
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import click
import structlog

from willforge.config import get_settings
from willforge.models.facts import Speaker

logger = structlog.get_logger(__name__)

SPEAKER_PREFIXES = {
    "user:": Speaker.USER,
    "assistant:": Speaker.ASSISTANT,
    "system:": Speaker.SYSTEM,
}


def parse_transcript_line(line: str) -> tuple[Speaker, str]:
    """Split an optional `user:`/`assistant:` prefix off a transcript line."""
    stripped = line.strip()
    lowered = stripped.lower()
    for prefix, speaker in SPEAKER_PREFIXES.items():
        if lowered.startswith(prefix):
            return speaker, stripped[len(prefix):].strip()
    return Speaker.USER, stripped


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """willforge: build a will through conversation."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if debug:
        structlog.configure(
            wrapper_class=structlog.make_filtering_bound_logger(10),
        )


# =========================================================================
# Template Commands
# =========================================================================


@cli.command()
def templates() -> None:
    """List available will templates."""
    from willforge.pipeline.templates import TEMPLATES

    for kind, template in TEMPLATES.items():
        click.echo(f"{kind.value:<16} {template.display_name}")
        click.echo(f"{'':<16} base: {', '.join(template.base_keys)}")
        click.echo(f"{'':<16} conditional: {', '.join(template.conditional_keys)}")


# =========================================================================
# Pipeline Commands
# =========================================================================


@cli.command()
@click.argument("transcript_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--template", "-t", "template_kind", default=None, help="Template kind")
@click.option("--facts", "show_facts", is_flag=True, help="Print extracted facts as JSON")
@click.option("--output", "-o", type=click.Path(), help="Write the document to a file")
def render(
    transcript_path: str,
    template_kind: Optional[str],
    show_facts: bool,
    output: Optional[str],
) -> None:
    """Feed a transcript file through the pipeline and print the will."""
    from willforge.pipeline.orchestrator import ConversationOrchestrator

    orchestrator = ConversationOrchestrator(template_kind=template_kind)
    lines = Path(transcript_path).read_text(encoding="utf-8").splitlines()

    processed = 0
    for line in lines:
        if not line.strip():
            continue
        speaker, text = parse_transcript_line(line)
        if text:
            orchestrator.handle_utterance(text, speaker)
            processed += 1

    logger.info("transcript_rendered", utterances=processed, stage=orchestrator.stage.value)

    if output:
        Path(output).write_text(orchestrator.preview, encoding="utf-8")
        click.echo(f"Will written to: {output}")
    else:
        click.echo(orchestrator.preview)

    if show_facts:
        click.echo("\nExtracted facts:")
        click.echo(json.dumps(orchestrator.facts.model_dump(mode="json"), indent=2))
    click.echo(f"\nCompletion: {orchestrator.progress}%")


@cli.command()
@click.option("--template", "-t", "template_kind", default=None, help="Template kind")
@click.option("--redis", "use_redis", is_flag=True, help="Save drafts to Redis")
def chat(template_kind: Optional[str], use_redis: bool) -> None:
    """Interactive information-stage conversation with the assistant.

    Type :preview to show the will, :facts for the extracted facts, :quit to stop.
    """
    from willforge.pipeline.orchestrator import ConversationOrchestrator
    from willforge.services.llm_service import get_llm_service

    settings = get_settings()
    llm = get_llm_service()
    if not llm.is_configured:
        click.echo("Error: No LLM provider configured. Set WILLFORGE_ANTHROPIC_API_KEY "
                   "or WILLFORGE_OPENAI_API_KEY.", err=True)
        return

    backend = None
    if use_redis:
        from willforge.storage.redis_store import get_redis_store

        backend = get_redis_store()

    orchestrator = ConversationOrchestrator(
        template_kind=template_kind, llm_service=llm, backend=backend
    )
    click.echo(f"{settings.assistant_name}: {orchestrator.start()}")

    async def run_turn(text: str) -> None:
        turn = await orchestrator.send(text)
        click.echo(f"{settings.assistant_name}: {turn.reply_text}")
        if turn.user.changed_label or (turn.reply and turn.reply.changed_label):
            label = turn.user.changed_label or turn.reply.changed_label
            click.echo(f"  [updated: {label}, {orchestrator.progress}% complete]")
        if turn.user.stage_complete or (turn.reply and turn.reply.stage_complete):
            click.echo("  [information stage complete - type :preview to review your will]")
        for warning in await orchestrator.flush():
            click.echo(f"  [warning: {warning.kind} save failed: {warning.message}]", err=True)

    while True:
        text = click.prompt("You", prompt_suffix=": ", default="", show_default=False)
        command = text.strip().lower()
        if command in (":quit", ":q", ":exit"):
            break
        if command == ":preview":
            click.echo(orchestrator.preview)
            continue
        if command == ":facts":
            click.echo(json.dumps(orchestrator.facts.model_dump(mode="json"), indent=2))
            continue
        if not text.strip():
            continue
        asyncio.run(run_turn(text))


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
