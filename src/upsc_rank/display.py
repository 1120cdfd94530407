"""Rich terminal display for upsc-rank."""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

SUBJECT_NAMES: dict[str, str] = {
    "gs1": "GS I",
    "gs2": "GS II",
    "gs3": "GS III",
    "gs4": "GS IV",
    "essay": "Essay",
    "optional": "Optional",
    "psir": "PSIR",
    "csat": "CSAT",
}

_QUALITY_COLORS: dict[str, str] = {
    "high": "green",
    "medium": "gold1",
    "low": "red1",
}


def format_rank(n: int) -> str:
    """Format ranks with thousands separators: 12345 -> '12,345'."""
    return f"{n:,}"


def _bar(value: float, width: int = 20) -> str:
    """Render a 0-1 value as text: [████████░░░░░░░░░░░░]."""
    ratio = max(0.0, min(value, 1.0))
    filled = int(ratio * width)
    return "[" + "█" * filled + "░" * (width - filled) + "]"


def _border_for(probability: float) -> str:
    if probability >= 60:
        return "green"
    if probability >= 20:
        return "gold1"
    return "red1"


def print_prediction(data: dict) -> None:
    """Print the rank panel and the subject table for a prediction dict."""
    rank = data.get("rank", {})
    interval = rank.get("confidence_interval", {})
    probability = rank.get("qualification_probability", 0.0)
    quality = data.get("data_quality", "low")
    quality_color = _QUALITY_COLORS.get(quality, "white")

    lines: list[str] = []
    lines.append("")
    lines.append(f"  [bold]Predicted Rank: {format_rank(rank.get('predicted_rank', 0))}[/]")
    lines.append(
        f"  Category ({rank.get('category', 'general').upper()}): "
        f"{format_rank(rank.get('category_rank', 0))}"
    )
    lines.append(
        f"  Range: {format_rank(interval.get('lower', 0))} - {format_rank(interval.get('upper', 0))}"
    )
    lines.append(f"  Percentile: {rank.get('percentile', 0.0):.1f}")
    lines.append(f"  Qualification: {probability:.1f}%")
    lines.append("")
    lines.append(f"  Total Score: [bold]{data.get('total_score', 0)}[/]")
    confidence = data.get("confidence_level", 0.0)
    lines.append(f"  Confidence: {_bar(confidence)} {int(confidence * 100)}%")
    lines.append(
        f"  Data: [{quality_color}]{quality.upper()}[/] ({data.get('sample_count', 0)} samples)"
    )
    if data.get("low_confidence"):
        lines.append("  [bold red1]LOW CONFIDENCE[/] - log more sessions for a steadier estimate")
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title="[bold]UPSC RANK[/]",
        box=box.ROUNDED,
        border_style=_border_for(probability),
        width=60,
    )
    console.print(panel)

    table = Table(
        title="Subject Predictions",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("Paper", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Difficulty", justify="right")
    table.add_column("Volatility", justify="right")
    for code, pred in data.get("subject_predictions", {}).items():
        difficulty = pred.get("difficulty")
        volatility = pred.get("volatility")
        table.add_row(
            SUBJECT_NAMES.get(code, code.upper()),
            str(pred.get("score", 0)),
            f"{pred.get('confidence', 0.0):.0%}",
            f"{difficulty:.2f}" if difficulty is not None else "-",
            f"{volatility:.2f}" if volatility is not None else "-",
        )
    console.print(table)

    factors = data.get("factors", {})
    if factors:
        factor_table = Table(title="Adaptive Factors", box=box.ROUNDED, show_header=False)
        factor_table.add_column("Factor", style="bold")
        factor_table.add_column("Value", justify="right")
        factor_table.add_row("Time decay", f"{factors.get('time_decay', 0.0):.3f}")
        factor_table.add_row("Consistency", f"{factors.get('consistency', 0.0):.3f}")
        factor_table.add_row("Learning velocity", f"{factors.get('learning_velocity', 0.0):.3f}")
        factor_table.add_row("Stress impact", f"{factors.get('stress_impact', 0.0):.2f}")
        console.print(factor_table)

    recommendations = data.get("recommendations") or []
    risks = data.get("risk_factors") or []
    if recommendations or risks:
        advice: list[str] = [""]
        days = data.get("days_to_exam")
        timeline = data.get("timeline") or {}
        if days is not None:
            advice.append(f"  [bold]{days} days to exam[/]")
            if timeline:
                advice.append(
                    f"  Expected completion: {timeline.get('expected_completion', 0)}%"
                    f" - {timeline.get('focus', '')}"
                )
            advice.append("")
        advice.append("  [bold]Recommendations[/]")
        advice.extend(f"  [cyan]•[/] {item}" for item in recommendations)
        advice.append("")
        advice.append("  [bold]Risk factors[/]")
        advice.extend(f"  [red1]•[/] {item}" for item in risks)
        advice.append("")
        console.print(
            Panel(
                "\n".join(advice),
                title="[bold]Study Plan[/]",
                box=box.ROUNDED,
                border_style="cyan",
                width=60,
            )
        )


def print_metrics(data: dict) -> None:
    """Print real-time study metrics."""
    table = Table(
        title="Study Metrics",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("", min_width=22)

    for label, key in (
        ("Study consistency", "study_consistency"),
        ("Accuracy trend", "accuracy_trend"),
        ("Speed improvement", "speed_improvement"),
        ("Retention rate", "retention_rate"),
        ("Burnout risk", "burnout_risk"),
    ):
        value = data.get(key, 0.0)
        table.add_row(label, f"{value:.2f}", _bar(value))

    hours = data.get("peak_performance_hours", [])
    table.add_section()
    table.add_row("Peak hours", ", ".join(f"{h:02d}:00" for h in hours), "")
    console.print(table)


def print_history(rows: list[dict]) -> None:
    """Print stored predictions, newest first."""
    if not rows:
        print_no_data_message("No predictions stored yet. Run [bold]upsc-rank predict[/] first.")
        return
    table = Table(title="Prediction History", box=box.ROUNDED, header_style="bold")
    table.add_column("When")
    table.add_column("Total", justify="right")
    table.add_column("Rank", justify="right")
    table.add_column("Percentile", justify="right")
    for row in rows:
        table.add_row(
            str(row.get("created_at", ""))[:19].replace("T", " "),
            str(row.get("total_score", 0)),
            format_rank(row.get("predicted_rank", 0)),
            f"{row.get('percentile', 0.0):.1f}",
        )
    console.print(table)


def print_sample_logged(result: dict) -> None:
    console.print(
        f"[green]Logged sample[/] #{result.get('id')}: performance "
        f"{result.get('performance', 0):.1f} ({result.get('sample_count', 0)} total)"
    )


def print_progress_saved(result: dict) -> None:
    console.print(
        "[green]Progress saved[/]: "
        f"completion {result.get('completion_ratio', 0.0):.0%}, "
        f"accuracy {result.get('accuracy_ratio', 0.0):.0%}, "
        f"tests {result.get('test_performance_ratio', 0.0):.0%}, "
        f"category {result.get('category', 'general').upper()}"
    )


def print_draw_result(result: dict) -> None:
    """Print a band-based score/rank draw."""
    lines: list[str] = [""]
    for subject, score in result.get("scores", {}).items():
        lines.append(f"  {SUBJECT_NAMES.get(subject, subject.title()):<10s} {score:>4d}")
    lines.append("")
    lines.append(f"  Total:      [bold]{result.get('total_score', 0)}[/]")
    lines.append(f"  Drawn rank: [bold]{format_rank(result.get('rank', 0))}[/]")
    lines.append("")
    panel = Panel(
        "\n".join(lines),
        title="[bold]Realistic Draw[/]",
        box=box.ROUNDED,
        border_style="cyan",
        width=50,
    )
    console.print(panel)


def print_no_data_message(message: str | None = None) -> None:
    """Print message when no data is available."""
    text = message or "No samples found. Run [bold]upsc-rank log --performance N[/] first."
    panel = Panel(
        f"\n  {text}\n",
        title="[bold]UPSC RANK[/]",
        box=box.ROUNDED,
        border_style="grey50",
        width=60,
    )
    console.print(panel)


def print_error(message: str) -> None:
    console.print(f"[red]{message}[/]")
