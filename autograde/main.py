"""
AutoGrade CLI Application.

Provides a command-line interface for transcribing handwritten or typed
mathematics to LaTeX, previewing it, and grading it against a question
using a generative model.
"""

import logging
import time
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from autograde.config import Settings, get_settings
from autograde.editor import SYMBOL_PALETTE, EditorBuffer, find_symbol, highlight_source
from autograde.files import (
    ExportError,
    UploadError,
    export_source,
    is_supported_upload,
    load_upload,
    read_source,
)
from autograde.files.loader import guess_mime_type
from autograde.grading import GradingService, LLMError, ScoringError
from autograde.models import GradingResult, QuestionContext
from autograde.presets import SAMPLE_QUESTIONS, default_question
from autograde.rendering import FragmentKind, MathRenderer, render_page, to_rich_text
from autograde.session import GradingSession

# Create Typer app
app = typer.Typer(
    name="autograde",
    help="Transcribe, preview and grade handwritten mathematics",
    add_completion=False,
)

console = Console()
_renderer = MathRenderer()

_cli_state = {"verbose": False}

# Shared question options
QuestionJsonOption = Annotated[
    Optional[Path],
    typer.Option("--question", "-q", help="Question context as a JSON file"),
]
PresetOption = Annotated[
    Optional[str],
    typer.Option("--preset", help=f"Sample question: {', '.join(SAMPLE_QUESTIONS)}"),
]
TitleOption = Annotated[Optional[str], typer.Option("--title", help="Question title")]
DescriptionOption = Annotated[
    Optional[str], typer.Option("--description", help="Question description")
]
MarksOption = Annotated[Optional[str], typer.Option("--marks", help="Total marks available")]
SolutionOption = Annotated[
    Optional[Path],
    typer.Option("--solution", help="Ideal solution / answer key as a text file"),
]
QuestionFileOption = Annotated[
    Optional[Path],
    typer.Option("--question-file", help="Question paper image or PDF to scan"),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """
    AutoGrade - assisted grading of handwritten and typed mathematics.
    """
    _cli_state["verbose"] = verbose
    _configure_logging("DEBUG" if verbose else "WARNING")


@app.command()
def grade(
    answer_file: Annotated[
        Path, typer.Argument(help="Submission: image, PDF, or .tex/.txt/.md source")
    ],
    question: QuestionJsonOption = None,
    preset: PresetOption = None,
    title: TitleOption = None,
    description: DescriptionOption = None,
    marks: MarksOption = None,
    solution: SolutionOption = None,
    question_file: QuestionFileOption = None,
    refine_question: Annotated[
        bool,
        typer.Option("--refine-question", help="Reformat description and solution as LaTeX"),
    ] = False,
    show_source: Annotated[
        bool,
        typer.Option("--show-source", "-s", help="Print the graded LaTeX source"),
    ] = False,
    export: Annotated[
        bool,
        typer.Option("--export", "-e", help="Save the graded source as a .tex file"),
    ] = False,
) -> None:
    """
    Grade a submission against a question.

    Image and PDF submissions are transcribed to LaTeX first. The question
    comes from a preset, a JSON file or the default assignment, with any
    of the individual options applied on top.
    """
    try:
        settings = _load_settings()
        service = GradingService(settings)
        base = _base_question(question, preset)
        overrides = _question_overrides(title, description, marks, solution)

        with GradingSession(service, base, settings=settings) as session:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Preparing question...", total=None)
                if question_file is not None:
                    progress.update(task, description="Scanning question paper...")
                    if not session.scan_question(
                        load_upload(question_file, settings.max_file_size_mb)
                    ):
                        _fail("Question Error", session.state.error)
                if overrides:
                    session.update_question(**overrides)
                if refine_question:
                    progress.update(task, description="Formatting question...")
                    session.format_field("description")
                    session.format_field("solution")

                progress.update(task, description="Reading submission...")
                if is_supported_upload(guess_mime_type(answer_file)):
                    attachment = load_upload(answer_file, settings.max_file_size_mb)
                    progress.update(task, description="Transcribing submission...")
                    if not session.upload_answer(attachment):
                        _fail("Conversion Error", session.state.error)
                else:
                    session.set_source(read_source(answer_file))

                progress.update(task, description="Grading... (this may take a moment)")
                result = session.grade_now()

            if result is None:
                _fail(
                    "Grading Error",
                    session.state.error or "Nothing to grade: the submission is empty",
                )

            if show_source:
                console.print(Panel(highlight_source(session.source), title="Source"))

            _display_question(session.question)
            _display_results(result)

            if export:
                saved_path = session.export()
                console.print(f"\n[green]Source saved to:[/green] {saved_path}")

    except UploadError as e:
        console.print(f"[red]Upload Error:[/red] {e}")
        raise typer.Exit(1)
    except LLMError as e:
        console.print(f"[red]LLM Error:[/red] {e}")
        raise typer.Exit(1)
    except ScoringError as e:
        console.print(f"[red]Scoring Error:[/red] {e}")
        raise typer.Exit(1)
    except ExportError as e:
        console.print(f"[red]Export Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def transcribe(
    file: Annotated[Path, typer.Argument(help="Handwritten image or PDF")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the LaTeX source to this file"),
    ] = None,
) -> None:
    """
    Transcribe a handwritten image or PDF into a LaTeX document.
    """
    try:
        settings = _load_settings()
        attachment = load_upload(file, settings.max_file_size_mb)

        with console.status("Converting to LaTeX..."):
            latex = GradingService(settings).transcribe_document(attachment)

        if not latex:
            _fail("Conversion Error", "The model returned no LaTeX")

        if output:
            output.write_text(latex, encoding="utf-8")
            console.print(f"[green]LaTeX saved to:[/green] {output}")
        else:
            console.print(highlight_source(latex))

    except UploadError as e:
        console.print(f"[red]Upload Error:[/red] {e}")
        raise typer.Exit(1)
    except LLMError as e:
        console.print(f"[red]LLM Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def extract_question(
    file: Annotated[Path, typer.Argument(help="Question paper image or PDF")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Save the question as JSON"),
    ] = None,
) -> None:
    """
    Extract title, description and total marks from a question paper.

    The saved JSON can be passed back with ``grade --question``.
    """
    try:
        settings = _load_settings()
        attachment = load_upload(file, settings.max_file_size_mb)

        with console.status("Scanning question paper..."):
            question = GradingService(settings).extract_question(attachment)

        _display_question(question)

        if output:
            output.write_text(
                question.model_dump_json(by_alias=True, exclude={"question_image"}, indent=2),
                encoding="utf-8",
            )
            console.print(f"\n[green]Question saved to:[/green] {output}")

    except UploadError as e:
        console.print(f"[red]Upload Error:[/red] {e}")
        raise typer.Exit(1)
    except LLMError as e:
        console.print(f"[red]LLM Error:[/red] {e}")
        raise typer.Exit(1)
    except ScoringError as e:
        console.print(f"[red]Extraction Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def transcribe_solution(
    file: Annotated[Path, typer.Argument(help="Answer key image or PDF")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the transcription to this file"),
    ] = None,
) -> None:
    """
    Transcribe a worked solution into text with inline LaTeX math.
    """
    try:
        settings = _load_settings()
        attachment = load_upload(file, settings.max_file_size_mb)

        with console.status("Scanning solution..."):
            text = GradingService(settings).transcribe_solution(attachment)

        if output:
            output.write_text(text, encoding="utf-8")
            console.print(f"[green]Solution saved to:[/green] {output}")
        else:
            console.print(_render_inline(text))

    except UploadError as e:
        console.print(f"[red]Upload Error:[/red] {e}")
        raise typer.Exit(1)
    except LLMError as e:
        console.print(f"[red]LLM Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def refine(
    text: Annotated[Optional[str], typer.Argument(help="Plain mixed text to format")] = None,
    file: Annotated[
        Optional[Path],
        typer.Option("--file", "-f", help="Read the text from a file instead"),
    ] = None,
) -> None:
    """
    Wrap the math in plain text with $...$ and convert it to LaTeX.

    Example: "integral of x^2 from 0 to infty" becomes
    "integral of $\\int_0^\\infty x^2 dx$".
    """
    try:
        if file is not None:
            text = read_source(file)
        if not text or not text.strip():
            _fail("Error", "Provide text to format or a --file")

        settings = _load_settings()
        with console.status("Formatting..."):
            refined = GradingService(settings).refine_text(text)

        console.print(refined, markup=False, highlight=False)

    except UploadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except LLMError as e:
        console.print(f"[red]LLM Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def preview(
    source_file: Annotated[Path, typer.Argument(help="LaTeX, text or markdown source")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write a standalone HTML page"),
    ] = None,
    document: Annotated[
        Optional[bool],
        typer.Option(
            "--document/--text",
            help="Treat the source as a full LaTeX document or as mixed text "
            "(default: guessed from the content)",
        ),
    ] = None,
) -> None:
    """
    Render the math in a source file.

    Math is typeset to MathML for the HTML page and highlighted in the
    terminal. Expressions that fail to render are reported.
    """
    try:
        text = read_source(source_file)
    except UploadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if document is None:
        document = "\\documentclass" in text or "\\begin{document}" in text

    renderer = MathRenderer()
    fragments = renderer.render_document(text) if document else renderer.render_text(text)

    if fragments:
        console.print(Panel(to_rich_text(fragments), title="Preview"))
    else:
        console.print("[dim]No content to preview.[/dim]")

    for fragment in fragments:
        if fragment.kind == FragmentKind.ERROR:
            console.print(f"[yellow]⚠ {fragment.title}:[/yellow] {fragment.error}")

    if output:
        output.write_text(render_page(fragments, title=source_file.stem), encoding="utf-8")
        console.print(f"\n[green]Preview saved to:[/green] {output}")


@app.command()
def show(
    source_file: Annotated[Path, typer.Argument(help="LaTeX, text or markdown source")],
    theme: Annotated[str, typer.Option("--theme", help="Pygments colour theme")] = "monokai",
) -> None:
    """
    Print a source file with line numbers and syntax highlighting.
    """
    try:
        text = read_source(source_file)
    except UploadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(highlight_source(text, theme=theme))


@app.command()
def suggest(
    prefix: Annotated[str, typer.Argument(help="Text ending in a partial command, e.g. '\\fr'")],
    apply: Annotated[
        bool,
        typer.Option("--apply", help="Complete the text with the first suggestion"),
    ] = False,
) -> None:
    """
    Suggest LaTeX commands for the partial command at the end of the text.
    """
    buffer = EditorBuffer.at_end(prefix)
    pending = buffer.pending_command()
    if pending is None:
        console.print("[dim]No command being typed.[/dim]")
        return

    candidates = buffer.suggestions()
    if not candidates:
        console.print(f"[dim]No suggestions for {escape(pending)}[/dim]")
        return

    if apply:
        buffer.apply_suggestion(candidates[0])
        console.print(buffer.text, markup=False, highlight=False)
        return

    for command in candidates:
        console.print(command, markup=False, highlight=False)


@app.command()
def symbols(
    category: Annotated[
        Optional[str],
        typer.Option("--category", "-c", help="Only show one palette category"),
    ] = None,
    insert: Annotated[
        Optional[str],
        typer.Option("--insert", help="Label of the symbol to insert"),
    ] = None,
    into: Annotated[
        Optional[Path],
        typer.Option("--into", help="Source file to insert the symbol into"),
    ] = None,
    at: Annotated[
        Optional[int],
        typer.Option("--at", help="Character offset to insert at (default: end of file)"),
    ] = None,
) -> None:
    """
    List the symbol palette, or insert a symbol's snippet into a file.
    """
    if insert is not None:
        symbol = find_symbol(insert)
        if symbol is None:
            _fail("Error", f"Unknown symbol: {insert}")
        if into is None:
            console.print(symbol.code, markup=False, highlight=False)
            return
        try:
            buffer = EditorBuffer.at_end(read_source(into))
        except UploadError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
        if at is not None:
            buffer.move_caret(at)
        buffer.insert(symbol.code)
        into.write_text(buffer.text, encoding="utf-8")
        console.print(f"[green]Inserted[/green] {symbol.label} into {into}")
        return

    categories = SYMBOL_PALETTE
    if category is not None:
        matches = {k: v for k, v in SYMBOL_PALETTE.items() if k.lower() == category.lower()}
        if not matches:
            _fail("Error", f"Unknown category. Choose from: {', '.join(SYMBOL_PALETTE)}")
        categories = matches

    for name, entries in categories.items():
        table = Table(title=name)
        table.add_column("Label", style="cyan")
        table.add_column("Code")
        table.add_column("Tooltip", style="dim")
        for symbol in entries:
            table.add_row(Text(symbol.label), Text(symbol.code), Text(symbol.tooltip or ""))
        console.print(table)


@app.command("export")
def export_command(
    source_file: Annotated[Path, typer.Argument(help="LaTeX source to export")],
    title: Annotated[
        str, typer.Option("--title", "-t", help="Question title used for the file name")
    ] = "",
    directory: Annotated[
        Path, typer.Option("--directory", "-d", help="Directory to write to")
    ] = Path("."),
) -> None:
    """
    Save a source as a .tex file named after the question title.
    """
    try:
        path = export_source(read_source(source_file), title, directory)
        console.print(f"[green]Exported to:[/green] {path}")
    except UploadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except ExportError as e:
        console.print(f"[red]Export Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def watch(
    source_file: Annotated[Path, typer.Argument(help="LaTeX source to watch")],
    question: QuestionJsonOption = None,
    preset: PresetOption = None,
    title: TitleOption = None,
    description: DescriptionOption = None,
    marks: MarksOption = None,
    solution: SolutionOption = None,
    interval: Annotated[
        float, typer.Option("--interval", help="Seconds between checks for changes")
    ] = 0.5,
) -> None:
    """
    Re-grade a source file whenever it changes.

    Grading waits until the file has stopped changing for the configured
    debounce window. Press Ctrl+C to stop.
    """
    try:
        settings = _load_settings()
        base = _base_question(question, preset)
        overrides = _question_overrides(title, description, marks, solution)
    except UploadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    def on_update(session: GradingSession) -> None:
        if session.state.error:
            console.print(f"[red]Grading Error:[/red] {session.state.error}")
        elif session.result is not None:
            _display_results(session.result)

    with GradingSession(
        GradingService(settings), base, settings=settings, on_update=on_update
    ) as session:
        if overrides:
            session.update_question(**overrides)
        console.print(f"[bold]Watching[/bold] {source_file} [dim](Ctrl+C to stop)[/dim]")

        last_modified: float | None = None
        try:
            while True:
                modified = source_file.stat().st_mtime
                if modified != last_modified:
                    last_modified = modified
                    session.set_source(read_source(source_file))
                    console.print("[dim]Change detected, waiting for edits to settle...[/dim]")
                time.sleep(interval)
        except KeyboardInterrupt:
            console.print("\n[dim]Stopped watching.[/dim]")
        except (OSError, UploadError) as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)


@app.command()
def health() -> None:
    """
    Check if the grading service is reachable.

    Verifies API connectivity and configuration.
    """
    try:
        settings = _load_settings()
        console.print("[bold]AutoGrade Health Check[/bold]\n")

        # Check settings
        console.print("[dim]Checking configuration...[/dim]")
        console.print(f"  API Base URL: {settings.gemini_base_url}")
        console.print(f"  Model: {settings.gemini_model}")
        console.print(f"  Max Retries: {settings.max_retries}")
        console.print(f"  Debounce: {settings.debounce_seconds}s")

        # Check API connectivity
        console.print("\n[dim]Checking API connectivity...[/dim]")
        service = GradingService(settings)

        if service.health_check():
            console.print("[green]✓ API is reachable[/green]")
        else:
            console.print("[red]✗ API is not reachable[/red]")
            raise typer.Exit(1)

        console.print("\n[green]All systems operational[/green]")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


# ==============================================================================
# Helpers
# ==============================================================================


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _load_settings() -> Settings:
    """Load settings, exiting with a readable message when misconfigured."""
    try:
        settings = get_settings()
    except ValidationError as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        raise typer.Exit(1)
    if not _cli_state["verbose"]:
        logging.getLogger().setLevel(settings.log_level)
    return settings


def _fail(label: str, message: str | None) -> None:
    console.print(f"[red]{label}:[/red] {escape(message or '')}")
    raise typer.Exit(1)


def _base_question(question_json: Path | None, preset: str | None) -> QuestionContext:
    """Starting question: a JSON file, a preset, or the default assignment."""
    if question_json is not None and preset is not None:
        _fail("Error", "Use either --question or --preset, not both")

    if preset is not None:
        if preset not in SAMPLE_QUESTIONS:
            _fail("Error", f"Unknown preset. Choose from: {', '.join(SAMPLE_QUESTIONS)}")
        return SAMPLE_QUESTIONS[preset]

    if question_json is not None:
        try:
            return QuestionContext.model_validate_json(question_json.read_text(encoding="utf-8"))
        except OSError as e:
            _fail("Error", f"Cannot read question file: {e}")
        except ValidationError as e:
            _fail("Question Error", f"Invalid question file {question_json}: {e}")

    return default_question()


def _question_overrides(
    title: str | None,
    description: str | None,
    marks: str | None,
    solution: Path | None,
) -> dict[str, Any]:
    """Collect the question fields given on the command line."""
    overrides: dict[str, Any] = {}
    if title is not None:
        overrides["title"] = title
    if description is not None:
        overrides["description"] = description
    if marks is not None:
        try:
            total = Decimal(marks)
        except InvalidOperation:
            total = Decimal(0)
        if not total.is_finite() or total <= 0:
            _fail("Error", f"--marks must be a positive number, got {marks!r}")
        overrides["total_marks"] = total
    if solution is not None:
        overrides["ideal_solution"] = read_source(solution)
    return overrides


def _display_question(question: QuestionContext) -> None:
    """Display the question being graded against."""
    table = Table(title="Question", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Title", Text(question.title or "-"))
    table.add_row("Description", _render_inline(question.description))
    table.add_row("Total Marks", str(question.total_marks))
    if question.ideal_solution:
        table.add_row("Ideal Solution", _render_inline(question.ideal_solution))
    if question.question_image is not None:
        table.add_row("Question Paper", Text(question.question_image.file_name or "attached"))
    console.print(table)


def _display_results(result: GradingResult) -> None:
    """Display a grading result."""

    # Score summary
    score_color = (
        "green" if result.percentage >= 75 else "yellow" if result.percentage >= 50 else "red"
    )
    console.print(
        Panel(
            f"[{score_color}][bold]{result.score} / {result.max_score}[/bold] "
            f"({result.percentage}%)[/{score_color}]\n"
            f"Confidence: {result.confidence_label} ({round(result.grading_confidence * 100)}%)",
            title=result.verdict,
        )
    )

    console.print(Panel(_render_inline(result.summary), title="Summary"))

    if result.mistake_types:
        categories = ", ".join(kind.value for kind in result.mistake_types)
        console.print(f"[bold]Mistake categories:[/bold] [cyan]{categories}[/cyan]")

    if result.mistakes:
        table = Table(title="Mistakes")
        table.add_column("#", justify="right")
        table.add_column("Description")
        for index, mistake in enumerate(result.mistakes, start=1):
            table.add_row(str(index), _render_inline(mistake))
        console.print(table)
    else:
        console.print("[green]✓ No mistakes found[/green]")

    console.print(Panel(_render_inline(result.feedback), title="Feedback"))

    if result.improvements:
        console.print("[bold]Improvements:[/bold]")
        for improvement in result.improvements:
            console.print("  • ", _render_inline(improvement))


def _render_inline(text: str) -> Text:
    return to_rich_text(_renderer.render_text(text))


if __name__ == "__main__":
    app()
