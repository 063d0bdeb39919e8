from __future__ import annotations
#!/usr/bin/env python3
"""
Demo script for the study guide synthesizer.

Builds a study guide from local text files and renders it in the terminal.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()
logging.basicConfig(level=logging.WARNING)


def load_documents(paths: list[str]):
    """Read text files into Documents."""
    from studyguide.synthesis import Document

    documents = []
    for path in paths:
        file_path = Path(path)
        text = file_path.read_text(encoding="utf-8", errors="replace")
        documents.append(Document.from_text(file_path.name, text))
    return documents


def render_connection(gateway) -> None:
    info = gateway.get_connection_info()
    color = "green" if gateway.is_connected else "yellow"
    console.print(f"[{color}]Inference service: {info.status.value}[/] "
                  f"(model: {info.model}, {info.models_count} available)")

    if not gateway.is_connected:
        console.print("\n[yellow]Using fallback content. To use a model, make sure Ollama is running:[/]")
        console.print("  ollama serve")
        console.print("  ollama pull phi3:mini")


def render_section(section) -> None:
    """Print one study guide section."""
    style = "bold magenta" if section.level == 1 else "bold blue"
    console.print(Panel(section.content, title=f"[{style}]{section.title}[/]"))

    if section.keywords:
        console.print(f"[bold]Key terms:[/] {', '.join(section.keywords)}")

    table = Table(show_header=True, show_lines=False)
    table.add_column("Category", style="bold")
    table.add_column("Content")
    for label, values in (
        ("Questions", section.questions),
        ("Notes", section.notes),
        ("Key takeaways", section.summaries),
        ("Annotations", section.annotations),
        ("Examples", section.examples),
    ):
        if values:
            table.add_row(label, "\n".join(f"• {v}" for v in values))
    console.print(table)
    console.print()


def demo_study_guide(paths: list[str], connect: bool = True) -> None:
    """Demo a full synthesis run."""
    from studyguide.config import get_config
    from studyguide.gateway import InferenceGateway
    from studyguide.synthesis import SynthesisError, SynthesisOrchestrator

    documents = load_documents(paths)
    names = ", ".join(d.name for d in documents)
    console.print(Panel(f"[bold]Documents:[/] {names}", title="Study Guide Demo"))

    config = get_config()
    gateway = InferenceGateway(config)
    if connect:
        console.print("\n[bold blue]Step 1: Connecting[/]")
        asyncio.run(gateway.connect_with_retry())
    render_connection(gateway)

    console.print("\n[bold blue]Step 2: Synthesizing[/]\n")
    orchestrator = SynthesisOrchestrator(gateway=gateway, config=config)
    try:
        result = orchestrator.synthesize_sync(documents)
    except SynthesisError as e:
        console.print(f"[red]Error: {e}[/]")
        console.print("[yellow]The run was not cached; try again.[/]")
        return

    for section in result.sections:
        render_section(section)

    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Sections", str(len(result.sections)))
    table.add_row("Total Words", str(result.analysis.total_words))
    table.add_row("Content Source", result.source)
    table.add_row("Fallback Categories", ", ".join(result.fallback_categories) or "-")
    table.add_row("Generation Requests", str(gateway.request_count))
    console.print(table)


def interactive_mode(paths: list[str]) -> None:
    """Ask questions against the given files."""
    from studyguide.gateway import InferenceGateway

    documents = load_documents(paths)
    context = "\n\n".join(d.raw_text for d in documents)

    gateway = InferenceGateway()
    asyncio.run(gateway.connect_with_retry())
    render_connection(gateway)

    console.print(Panel(
        "[bold]Study Assistant[/]\n\n"
        "Ask questions about your documents.\n"
        "Type 'quit' to exit.",
        title="Welcome",
    ))

    while True:
        console.print()
        question = console.input("[bold blue]Question:[/] ")

        if question.lower() in ["quit", "exit", "q"]:
            console.print("[yellow]Goodbye![/]")
            break

        if not question.strip():
            continue

        answer = asyncio.run(gateway.ask_question(question, context))
        console.print(Panel(answer, title="Answer"))


def main():
    parser = argparse.ArgumentParser(description="Study Guide Synthesizer Demo")
    parser.add_argument(
        "files",
        nargs="+",
        help="Text or markdown files to build the guide from",
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=["guide", "ask"],
        default="guide",
        help="Demo mode: build a study guide or ask questions",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip connecting and use fallback content only",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log pipeline stages using the configured logging settings",
    )

    args = parser.parse_args()

    if args.verbose:
        from studyguide.config import get_config
        get_config().setup_logging()

    if args.mode == "guide":
        demo_study_guide(args.files, connect=not args.offline)
    else:
        interactive_mode(args.files)


if __name__ == "__main__":
    main()
