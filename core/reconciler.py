"""Diff reconciler - turns the converged file set into reviewable fixes. Zero LLM calls."""

from core.state import SuggestedFix

MODIFIED_DESCRIPTION = (
    "This file was modified to ensure compatibility with the Render hosting environment."
)
ADDED_DESCRIPTION = "This file was added to configure the project for deployment on Render."


def reconcile(original, final):
    """List files that differ between the original upload and the final set.

    Modified files come first, then added ones, each in the final mapping's
    order. Files the model dropped are not reported, and the final set still
    omits them.
    """
    modified = []
    added = []
    for name, content in final.items():
        if name not in original:
            added.append(SuggestedFix(name, ADDED_DESCRIPTION, content))
        elif original[name] != content:
            modified.append(SuggestedFix(name, MODIFIED_DESCRIPTION, content))
    return modified + added
