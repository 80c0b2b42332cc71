"""Claude API client for deployment analysis and error diagnosis."""

import logging

import anthropic

from config.defaults import DEFAULTS
from core.errors import DeployerError, ErrorKind

logger = logging.getLogger(__name__)


def get_client(api_key):
    """Return an Anthropic client. Raises if no API key was supplied."""
    if not api_key:
        raise RuntimeError(
            "No Anthropic API key configured. "
            "Get a key at https://console.anthropic.com/ and run:\n"
            "  export ANTHROPIC_API_KEY='your-key-here'"
        )
    return anthropic.Anthropic(api_key=api_key)


class LLMClient:
    """Thin wrapper over the Anthropic messages API.

    The API key is passed in by the caller; nothing here reads the
    environment. Calls are made exactly once: transport failures are
    raised as DeployerError(MODEL_TRANSPORT) without retrying.
    """

    def __init__(self, api_key=None, model=None, max_tokens=None, client=None):
        self.model = model or DEFAULTS["analysis_model"]
        self.max_tokens = max_tokens or DEFAULTS["max_tokens"]
        self._client = client or get_client(api_key)

    def call_llm(self, system_prompt, user_message, model=None, max_tokens=None):
        """Call Claude and return the response text."""
        message = self._stream(
            model=model or self.model,
            max_tokens=max_tokens or self.max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_message}],
        )
        return "".join(
            block.text for block in message.content if block.type == "text"
        ).strip()

    def call_structured(self, system_prompt, user_message, tool_name, schema,
                        iteration=None):
        """Force Claude to answer through a single tool and return its input dict.

        The schema is sent as the tool's input_schema; callers still validate
        the result, since the API does not guarantee conformance.
        """
        message = self._stream(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_message}],
            tools=[{
                "name": tool_name,
                "description": "Submit the structured result.",
                "input_schema": schema,
            }],
            tool_choice={"type": "tool", "name": tool_name},
            iteration=iteration,
        )

        if message.stop_reason == "max_tokens":
            raise DeployerError(
                "The AI response was cut off before it finished "
                f"(iteration {_display(iteration)}).",
                ErrorKind.MODEL_SCHEMA,
                iteration=iteration,
            )

        for block in message.content:
            if block.type == "tool_use" and block.name == tool_name:
                return block.input

        raise DeployerError(
            f"Received an invalid response from the AI (iteration {_display(iteration)}).",
            ErrorKind.MODEL_SCHEMA,
            iteration=iteration,
            payload=[getattr(b, "text", None) for b in message.content],
        )

    def _stream(self, iteration=None, **kwargs):
        # Streaming avoids the SDK timeout for large max_tokens
        try:
            with self._client.messages.stream(**kwargs) as stream:
                return stream.get_final_message()
        except anthropic.APIError as e:
            logger.error("Model call failed: %s", e)
            raise DeployerError(
                f"The AI service request failed: {e}",
                ErrorKind.MODEL_TRANSPORT,
                iteration=iteration,
            ) from e


def _display(iteration):
    return "?" if iteration is None else iteration + 1
