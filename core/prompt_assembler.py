"""Prompt assembler - picks which files fit into one analysis request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from config.defaults import DEFAULTS
from config.rules import PRIORITY_FILES, is_source_candidate
from utils.template_engine import render_template


@dataclass
class AssembledPrompt:
    files: dict[str, str]       # insertion order is the order sent to the model
    total_size: int
    text: str


def select_files(files: Mapping[str, str], budget: int | None = None) -> dict[str, str]:
    """Choose a budget-bounded subset of files, priority manifests first.

    Priority files are taken in list order, each only if it fits the
    remaining budget. Source-like files not yet selected then fill what is
    left in sorted path order, stopping at the first one that does not fit.
    A priority file skipped for size is one of those candidates.
    """
    if budget is None:
        budget = DEFAULTS["prompt_budget"]

    selected = {}
    used = 0

    for name in PRIORITY_FILES:
        if name not in files:
            continue
        content = files[name]
        if used + len(content) <= budget:
            selected[name] = content
            used += len(content)

    candidates = sorted(
        path for path in files
        if path not in selected and is_source_candidate(path)
    )
    for path in candidates:
        content = files[path]
        if used + len(content) > budget:
            break
        selected[path] = content
        used += len(content)

    return selected


def format_files(selected: Mapping[str, str]) -> str:
    """Render files as <file name="..."> blocks."""
    return "\n".join(
        f'<file name="{name}">\n{content}\n</file>'
        for name, content in selected.items()
    )


def assemble_prompt(files: Mapping[str, str], budget: int | None = None) -> AssembledPrompt:
    """Build the user message for one analysis request."""
    selected = select_files(files, budget)
    text = render_template("analysis.txt", {"files": format_files(selected)})
    return AssembledPrompt(
        files=selected,
        total_size=sum(len(c) for c in selected.values()),
        text=text,
    )
