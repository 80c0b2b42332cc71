"""Diagnoser agent - explains a failed repository creation in plain language."""

import logging

from config.defaults import DEFAULTS
from utils.template_engine import render_template

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = "You are a helpful, expert software engineer assistant. Answer in plain text."

FALLBACK_MESSAGE = (
    "An error occurred while creating the repository: {error}. "
    "Please check the repository name and your GitHub token permissions."
)


class ErrorDiagnoser:
    """One lightweight model call; falls back to a canned message on any failure."""

    name = "diagnoser"

    def __init__(self, llm):
        self.llm = llm

    def diagnose(self, error_message, repo_name):
        prompt = render_template("diagnosis.txt", {
            "repo_name": repo_name,
            "error_message": error_message,
        })
        try:
            text = self.llm.call_llm(
                _SYSTEM_PROMPT,
                prompt,
                model=DEFAULTS["diagnosis_model"],
                max_tokens=DEFAULTS["diagnosis_max_tokens"],
            )
        except Exception as e:
            logger.warning("Error diagnosis failed: %s", e)
            return FALLBACK_MESSAGE.format(error=error_message)

        return text or FALLBACK_MESSAGE.format(error=error_message)
