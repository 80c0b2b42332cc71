"""Prompt template loading using string.Template for safe rendering."""

import os
from string import Template


def get_prompts_dir():
    """Return the absolute path to the prompt templates directory."""
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), "agents", "prompts")


def load_template(template_name):
    """Load a prompt template file and return its contents as a string."""
    prompts_dir = get_prompts_dir()
    path = os.path.join(prompts_dir, template_name)
    resolved = os.path.realpath(path)
    if not resolved.startswith(os.path.realpath(prompts_dir) + os.sep):
        raise ValueError(f"Template path escapes prompts directory: {template_name}")
    with open(resolved, "r", encoding="utf-8") as f:
        return f.read()


def render_template(template_name, variables):
    """Load and render a prompt template with the given variables.

    Uses string.Template.safe_substitute - unknown placeholders are left
    as-is, and substituted values are never re-expanded, so file contents
    containing "$" pass through untouched.
    """
    raw = load_template(template_name)
    return Template(raw).safe_substitute(variables)
