"""Main pipeline orchestrator - bounded plan-and-repair state machine."""

from __future__ import annotations

import dataclasses
import logging

from config.defaults import DEFAULTS
from core.errors import DeployerError, ErrorKind
from core.reconciler import reconcile
from core.state import (
    AnalysisResult,
    ConvergenceState,
    LoopStatus,
    StopReason,
    freeze_files,
)
from utils.archive import archive_files, write_archive
from utils.paths import fixed_archive_name, sanitize_path

logger = logging.getLogger(__name__)


def apply_fix_batch(files, batch):
    """Merge one batch of model fixes into a new file mapping.

    Returns (new_files, changed_paths, skipped_names). The input mapping is
    left untouched. Entries whose name sanitizes to "" are skipped.
    """
    updates = {}
    skipped = []
    for entry in batch:
        name = sanitize_path(entry.file_name)
        if not name:
            logger.warning("Model returned an invalid file path: %r. Skipping fix.", entry.file_name)
            skipped.append(entry.file_name)
            continue
        updates[name] = entry.file_content

    merged = dict(files)
    changed = []
    for name, content in updates.items():
        if name not in merged or merged[name] != content:
            merged[name] = content
            changed.append(name)

    return freeze_files(merged), changed, skipped


def advance(state: ConvergenceState, draft, batch, max_iterations: int) -> ConvergenceState:
    """Transition function for one completed model call.

    ITERATING -> CONVERGED when the batch is empty (STABLE), when it changes
    nothing (NO_OP), or when this was the last allowed call (EXHAUSTED).
    Otherwise stays ITERATING with the merged files.
    """
    if state.status is not LoopStatus.ITERATING:
        raise ValueError(f"Cannot advance a loop in state {state.status.value}")

    calls = state.model_calls + 1

    if not batch:
        return dataclasses.replace(
            state, draft=draft, model_calls=calls, changed_paths=[],
            status=LoopStatus.CONVERGED, reason=StopReason.STABLE,
        )

    files, changed, skipped = apply_fix_batch(state.files, batch)
    skipped_paths = state.skipped_paths + skipped

    if not changed:
        return dataclasses.replace(
            state, draft=draft, model_calls=calls, changed_paths=[],
            skipped_paths=skipped_paths,
            status=LoopStatus.CONVERGED, reason=StopReason.NO_OP,
        )

    next_iteration = state.iteration + 1
    exhausted = next_iteration >= max_iterations
    return dataclasses.replace(
        state,
        files=files,
        iteration=next_iteration,
        draft=draft,
        model_calls=calls,
        changed_paths=changed,
        skipped_paths=skipped_paths,
        status=LoopStatus.CONVERGED if exhausted else LoopStatus.ITERATING,
        reason=StopReason.EXHAUSTED if exhausted else None,
    )


_STOP_MESSAGES = {
    StopReason.STABLE: "Project state is stable. Finalizing plan.",
    StopReason.NO_OP: "No new changes detected. Finalizing plan.",
    StopReason.EXHAUSTED: "Iteration limit reached. Finalizing plan with the latest fixes.",
}


class Orchestrator:
    """Runs the analyze → fix → re-analyze loop for one uploaded project.

    Each run owns its ConvergenceState; nothing is shared between runs, so
    one Orchestrator may serve several runs. Model calls are strictly
    sequential and never retried.
    """

    def __init__(self, analyzer, max_iterations=None):
        self.analyzer = analyzer
        self.max_iterations = max_iterations or DEFAULTS["max_iterations"]

    def run(self, files, on_progress=None) -> AnalysisResult:
        """Run the loop to convergence and reconcile the result.

        Args:
            files: The uploaded {path: content} mapping. Never modified.
            on_progress: Optional callback(message) for user-facing progress.

        Raises:
            DeployerError: a model call failed or returned a malformed reply.
        """
        def progress(message):
            logger.info(message)
            if on_progress:
                on_progress(message)

        original = freeze_files(files)
        state = ConvergenceState(files=original)

        progress("Preparing project files for analysis...")

        while state.status is LoopStatus.ITERATING:
            progress(f"Sending analysis request (Iteration {state.iteration + 1})...")
            try:
                draft, batch = self.analyzer.run(state.files, state.iteration)
            except DeployerError:
                state.status = LoopStatus.FAILED
                raise

            progress("Received deployment plan and file corrections.")
            if batch:
                progress(f"Applying {len(batch)} file fix(es)...")
            state = advance(state, draft, batch, self.max_iterations)

        if state.draft is None:
            raise DeployerError(
                "The AI failed to generate a deployment plan. "
                "Please check the project files and try again.",
                ErrorKind.MODEL_SCHEMA,
            )

        progress(_STOP_MESSAGES[state.reason])

        plan = dataclasses.replace(
            state.draft, suggested_fixes=reconcile(original, state.files),
        )
        progress("Analysis complete.")

        return AnalysisResult(
            plan=plan,
            files=state.files,
            model_calls=state.model_calls,
            stop_reason=state.reason,
            skipped_paths=list(state.skipped_paths),
        )

    def build_archive(self, result: AnalysisResult, original_name):
        """Return (download_name, zip_bytes) for the fixed project, manifest included."""
        files = archive_files(result.files, result.plan.render_yaml)
        return fixed_archive_name(original_name), write_archive(files)

    def publish(self, result: AnalysisResult, pusher, repo_name, diagnoser=None):
        """Push the fixed project to a new repository.

        On failure the raw provider error is run through diagnoser (if any)
        and re-raised with the friendlier message.
        """
        files = archive_files(result.files, result.plan.render_yaml)
        try:
            return pusher.push(repo_name, files)
        except DeployerError as e:
            if diagnoser is None:
                raise
            raise DeployerError(
                diagnoser.diagnose(e.message, repo_name),
                e.kind,
                status=e.status,
            ) from e
