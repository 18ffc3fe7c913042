"""
AI subtask generation for a task title.
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any

from google.genai import Client as GenAIClient
from google.genai.types import HttpOptions

from .errors import SubtaskGenerationError

logger = logging.getLogger(__name__)

_DEFAULT_MODEL = "gemini-2.5-flash"
_DEFAULT_TIMEOUT_SECONDS = 30.0
_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

SYSTEM_PROMPT = """
You are a helpful assistant that breaks down big tasks into simple, clear subtasks.
Given a main task title, return a list of 5 to 7 clear, short subtasks needed to complete it.
The subtasks should be practical and written in plain language.
Return them as a plain JSON array. Do not include any extra text or explanations.

Main task: "Plan a wedding"

Example output:
[
  "Book wedding venue",
  "Hire photographer",
  "Send invitations",
  "Arrange catering",
  "Plan wedding ceremony",
  "Choose wedding dress",
  "Plan honeymoon"
]
"""


def parse_subtasks(text: str | None) -> list[str]:
    """Parse a model reply into a list of subtask strings.

    Accepts a bare JSON array or one wrapped in a markdown code fence.
    """
    if text is None or not text.strip():
        raise SubtaskGenerationError("No subtasks generated")

    payload = text.strip()
    fenced = _FENCE_RE.match(payload)
    if fenced:
        payload = fenced.group(1)

    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise SubtaskGenerationError("Failed to parse generated subtasks") from exc

    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise SubtaskGenerationError("Failed to parse generated subtasks")

    subtasks = [item.strip() for item in parsed if item.strip()]
    if not subtasks:
        raise SubtaskGenerationError("No subtasks generated")
    return subtasks


class SubtaskGenerator:
    """Ask a Gemini model to decompose a task into subtasks."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("SMART_TASKS_SUBTASK_MODEL", _DEFAULT_MODEL)
        self.timeout = timeout or _DEFAULT_TIMEOUT_SECONDS

        if client is not None:
            self._client = client
        else:
            resolved_key = api_key or os.getenv("GOOGLE_API_KEY")
            if resolved_key is None:
                raise ValueError(
                    "GOOGLE_API_KEY not found. "
                    "Provide api_key or set the environment variable."
                )
            self._client = GenAIClient(
                api_key=resolved_key,
                http_options=HttpOptions(timeout=int(self.timeout * 1000)),
            )

    async def generate(self, task_title: str) -> list[str]:
        if not isinstance(task_title, str) or not task_title.strip():
            raise ValueError("Task title is required")

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=f'Now generate subtasks for this task:\n"{task_title.strip()}"',
                config={
                    "system_instruction": SYSTEM_PROMPT,
                    "response_mime_type": "application/json",
                },
            )
        except Exception as exc:
            logger.exception("Subtask generation request failed")
            raise SubtaskGenerationError("Failed to generate subtasks") from exc

        return parse_subtasks(getattr(response, "text", None))
