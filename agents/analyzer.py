"""Analyzer agent - one model call: fixes plus a deployment plan draft."""

import logging
import os

from core.errors import DeployerError, ErrorKind
from core.prompt_assembler import assemble_prompt
from core.state import DeploymentPlan, FixEntry

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT_FILE = os.path.join(os.path.dirname(__file__), "prompts", "analysis_system.txt")

TOOL_NAME = "submit_deployment_plan"

_PLAN_FIELDS = ("projectType", "renderYaml", "buildCommand", "startCommand", "explanation")

PLAN_SCHEMA = {
    "type": "object",
    "properties": {
        "projectType": {"type": "string"},
        "renderYaml": {"type": "string"},
        "buildCommand": {"type": "string"},
        "startCommand": {"type": "string"},
        "explanation": {"type": "string"},
        "fixedFiles": {
            "type": "array",
            "description": (
                "An array of objects, each containing a fileName and its updated "
                "fileContent for files that were modified in THIS iteration."
            ),
            "items": {
                "type": "object",
                "properties": {
                    "fileName": {"type": "string"},
                    "fileContent": {"type": "string"},
                },
                "required": ["fileName", "fileContent"],
            },
        },
    },
    "required": list(_PLAN_FIELDS) + ["fixedFiles"],
}


def _load_prompt():
    with open(_SYSTEM_PROMPT_FILE, encoding="utf-8") as f:
        return f.read()


def parse_analysis(payload, iteration):
    """Validate a structured model reply and split it into (draft plan, fix batch).

    Every field is required and must have the right type; anything else is a
    schema error for the whole run.
    """
    def invalid(detail):
        return DeployerError(
            "Received an invalid response from the AI during the fixing process "
            f"(iteration {iteration + 1}): {detail}",
            ErrorKind.MODEL_SCHEMA,
            iteration=iteration,
            payload=payload,
        )

    if not isinstance(payload, dict):
        raise invalid("expected an object")

    for key in _PLAN_FIELDS:
        if not isinstance(payload.get(key), str):
            raise invalid(f"missing or non-string field '{key}'")

    fixed = payload.get("fixedFiles")
    if not isinstance(fixed, list):
        raise invalid("missing or non-array field 'fixedFiles'")

    batch = []
    for item in fixed:
        if not isinstance(item, dict):
            raise invalid("fixedFiles entries must be objects")
        name, content = item.get("fileName"), item.get("fileContent")
        if not isinstance(name, str) or not isinstance(content, str):
            raise invalid("fixedFiles entries need string fileName and fileContent")
        batch.append(FixEntry(file_name=name, file_content=content))

    draft = DeploymentPlan(
        project_type=payload["projectType"],
        render_yaml=payload["renderYaml"],
        build_command=payload["buildCommand"],
        start_command=payload["startCommand"],
        explanation=payload["explanation"],
    )
    return draft, tuple(batch)


class DeploymentAnalyzer:
    """Sends the current file set to the model and returns its plan and fixes."""

    name = "analyzer"

    def __init__(self, llm, budget=None):
        self.llm = llm
        self.budget = budget

    def run(self, files, iteration):
        prompt = assemble_prompt(files, self.budget)
        logger.info(
            "Iteration %d: sending %d/%d file(s), %d chars",
            iteration + 1, len(prompt.files), len(files), prompt.total_size,
        )
        payload = self.llm.call_structured(
            _load_prompt(), prompt.text, TOOL_NAME, PLAN_SCHEMA, iteration=iteration,
        )
        return parse_analysis(payload, iteration)
