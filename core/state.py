"""Pipeline state models shared across all stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


def freeze_files(files: Mapping[str, str]) -> Mapping[str, str]:
    """Return a read-only snapshot of a path -> content mapping."""
    return MappingProxyType(dict(files))


@dataclass(frozen=True)
class FixEntry:
    file_name: str      # raw name as returned by the model, unsanitized
    file_content: str


# One model call's worth of replacements, in the order the model returned them
FixBatch = tuple[FixEntry, ...]


@dataclass
class SuggestedFix:
    file_name: str
    description: str
    suggested_code: str

    def to_dict(self):
        return {
            "fileName": self.file_name,
            "description": self.description,
            "suggestedCode": self.suggested_code,
        }


@dataclass
class DeploymentPlan:
    project_type: str
    render_yaml: str
    build_command: str
    start_command: str
    explanation: str
    suggested_fixes: list[SuggestedFix] = field(default_factory=list)  # filled once, after the loop

    def to_dict(self):
        return {
            "projectType": self.project_type,
            "renderYaml": self.render_yaml,
            "buildCommand": self.build_command,
            "startCommand": self.start_command,
            "explanation": self.explanation,
            "suggestedFixes": [f.to_dict() for f in self.suggested_fixes],
        }


class LoopStatus(str, Enum):
    ITERATING = "iterating"
    CONVERGED = "converged"
    FAILED = "failed"


class StopReason(str, Enum):
    STABLE = "stable"           # model returned no fixed files
    NO_OP = "no_op"             # fixes matched the current files exactly
    EXHAUSTED = "exhausted"     # iteration bound reached, last draft accepted


@dataclass
class ConvergenceState:
    files: Mapping[str, str]                # read-only, replaced each iteration
    iteration: int = 0                      # index of the next model call
    draft: DeploymentPlan | None = None
    status: LoopStatus = LoopStatus.ITERATING
    reason: StopReason | None = None
    model_calls: int = 0
    skipped_paths: list[str] = field(default_factory=list)
    changed_paths: list[str] = field(default_factory=list)  # changed by the latest batch


@dataclass
class AnalysisResult:
    plan: DeploymentPlan
    files: Mapping[str, str]
    model_calls: int
    stop_reason: StopReason
    skipped_paths: list[str] = field(default_factory=list)
