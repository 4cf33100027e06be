"""HTTP client for the text generation agent.

The agent is reached through a JSON endpoint that accepts
``{"model": ..., "prompt": ...}`` and answers with an object holding a
``content`` string.
"""

import asyncio
import logging
import re
from typing import Any, Dict, Optional

import jsonschema
import requests

from .config import AgentConfig
from .errors import AgentClientError
from .logging_utils import redact_auth_headers

logger = logging.getLogger(__name__)

# Maximum number of characters from agent responses to include in log messages
MAX_LOG_LEN = 500

AGENT_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["content"],
    "properties": {
        "content": {"type": "string"},
        "model": {"type": "string"},
        "usage": {"type": "object"},
    },
}

_CODE_BLOCK_RE = re.compile(r"```[\w+#.-]*[ \t]*\n(.*?)\n?```", re.DOTALL)


def extract_content(response: Any) -> str:
    """Return the generated text from a plain or structured agent response."""
    if isinstance(response, str):
        return response
    if isinstance(response, dict) and isinstance(response.get("content"), str):
        return response["content"]
    content = getattr(response, "content", None)
    if isinstance(content, str):
        return content
    raise AgentClientError(f"Agent response has no text content: {type(response).__name__}")


def strip_code_fences(text: str) -> str:
    """Return the first fenced code block, or the trimmed text if none."""
    match = _CODE_BLOCK_RE.search(text)
    if match:
        return match.group(1).strip("\n")
    return text.strip()


class HttpAgentClient:
    """Sends prompts to the configured agent endpoint."""

    def __init__(self, config: Optional[AgentConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or AgentConfig()
        self.session = session or requests.Session()

    async def send_message(self, prompt: str) -> str:
        """Send ``prompt`` and return the generated text.

        The blocking HTTP call runs in the default executor so the event
        loop stays responsive.

        Raises:
            AgentClientError: On missing configuration, transport errors,
                non-2xx responses or a malformed response body.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._post, prompt)

    def _post(self, prompt: str) -> str:
        if not self.config.endpoint:
            raise AgentClientError("No agent endpoint configured (set TDD_ASSIST_AGENT_ENDPOINT)")

        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        payload = {"model": self.config.model, "prompt": prompt}

        try:
            response = self.session.post(
                self.config.endpoint, json=payload, headers=headers, timeout=self.config.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            message = redact_auth_headers(str(e))
            logger.error("Agent request failed: %s", message)
            raise AgentClientError(f"Agent request failed: {message}") from e
        except ValueError as e:
            raise AgentClientError(f"Agent returned invalid JSON: {e}") from e

        try:
            jsonschema.validate(instance=data, schema=AGENT_RESPONSE_SCHEMA)
        except jsonschema.exceptions.ValidationError as e:
            logger.error("Unexpected agent response: %s", str(data)[:MAX_LOG_LEN])
            raise AgentClientError(f"Agent response validation error: {e.message}") from e

        content = data["content"]
        logger.debug("Agent response: %s", content[:MAX_LOG_LEN])
        return content
