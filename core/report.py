"""Validation report model and console rendering."""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, computed_field
from rich.console import Console
from rich.markup import escape

RULE_WIDTH = 50


class ValidationReport(BaseModel):
    """Findings collected while validating one workflow package.

    Errors block submission, warnings are advisory and info entries are
    statistics. A report is valid when it holds no errors.
    """

    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    info: List[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def valid(self) -> bool:
        return len(self.errors) == 0

    def error(self, message: str) -> None:
        self.errors.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def note(self, message: str) -> None:
        self.info.append(message)


def render_report(report: ValidationReport, console: Console) -> None:
    """Print the report as a sectioned, human readable listing."""
    rule = "=" * RULE_WIDTH

    console.print()
    console.print(rule, style="magenta")
    console.print("Workflow Validation Report", style="bold magenta")
    console.print(rule, style="magenta")

    sections = (
        ("Information", "blue", "i", report.info),
        ("Warnings", "yellow", "!", report.warnings),
        ("Errors", "red", "x", report.errors),
    )
    for title, color, marker, findings in sections:
        if not findings:
            continue
        console.print()
        console.print(f"[{color}]{title}:[/]")
        for finding in findings:
            console.print(f"  [{color}]{marker}[/] {escape(finding)}")

    console.print()
    console.print(rule, style="magenta")
    if report.valid:
        console.print("[green]Workflow validation passed![/]")
    else:
        console.print(
            f"[red]Workflow validation failed with {len(report.errors)} error(s)[/]"
        )
