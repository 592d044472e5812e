"""AI estimation of planning attributes via OpenAI."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Literal, Optional

import openai
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.core.config import Settings, get_settings
from app.observability.tracing import trace
from app.services.collaborators.base import EstimationService
from app.services.errors import EstimationError
from app.services.planning_types import DEFAULT_CONTEXT, PlanItem, TaskAttributes
from app.services.property_parser import NO_START_DATE, extract_description

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
SUBTASK_THRESHOLD_MIN = 60

SYSTEM_PROMPT = "You estimate planning attributes for personal to-do items and answer with raw JSON only."

USER_PROMPT_TEMPLATE = """Analyze the following task and provide planning estimates.
Task Title: "{title}"
Task Description: "{description}"

Provide your best estimates for the following properties in a JSON object:
- EstTime: Total estimated time in minutes (integer).
- Urgency: A score from 1 to 10.
- Importance: A score from 1 to 10.
- Energy: 'low', 'medium', or 'high'.
- Context: A single, relevant keyword (e.g., 'work', 'home', 'computer').
- StartDate: (Optional) YYYY-MM-DD format if a specific start date is mentioned, otherwise use "None".

If the total EstTime is greater than {threshold} minutes, break the task down into smaller, actionable subtasks.
- The 'subtasks' property is an array of objects with 'title' (string) and 'estTime' (integer).
- Subtasks that must happen in a specific order get a 'sequence' number starting from 1.
- Subtasks that depend on others get a 'dependsOn' array with the titles of those subtasks. Dependencies must not be circular.
- The sum of the subtask estTimes should be close to the total EstTime.
- For a task of {threshold} minutes or less, omit 'subtasks' or leave it empty.

Example for a large task:
{{"EstTime": 180, "Urgency": 8, "Importance": 9, "Energy": "high", "Context": "project-launch", "StartDate": "None",
 "subtasks": [{{"title": "Finalize feature A", "estTime": 60, "sequence": 1}},
              {{"title": "Test feature A", "estTime": 30, "sequence": 2, "dependsOn": ["Finalize feature A"]}}]}}

Example for a small task:
{{"EstTime": 45, "Urgency": 7, "Importance": 6, "Energy": "medium", "Context": "email", "StartDate": "None"}}
"""


class SubtaskSuggestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    est_time: int = Field(alias="estTime", gt=0)
    sequence: Optional[int] = None
    depends_on: List[str] = Field(default_factory=list, alias="dependsOn")

    @field_validator("depends_on", mode="before")
    @classmethod
    def _null_dependencies(cls, value: Any) -> Any:
        return [] if value is None else value


class AIEstimate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    est_time: int = Field(alias="EstTime", gt=0)
    urgency: int = Field(alias="Urgency", ge=1, le=10)
    importance: int = Field(alias="Importance", ge=1, le=10)
    energy: Literal["low", "medium", "high"] = Field(alias="Energy")
    context: str = Field(alias="Context")
    start_date: Optional[str] = Field(default=None, alias="StartDate")
    subtasks: List[SubtaskSuggestion] = Field(default_factory=list)

    @field_validator("energy", mode="before")
    @classmethod
    def _normalize_energy(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("context")
    @classmethod
    def _single_keyword(cls, value: str) -> str:
        keyword = re.sub(r"\s+", "-", value.strip())
        return keyword or DEFAULT_CONTEXT

    @field_validator("start_date")
    @classmethod
    def _none_marker(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value.strip().lower() in {"", NO_START_DATE.lower(), "null"}:
            return None
        return value.strip()

    def to_attributes(self) -> TaskAttributes:
        return TaskAttributes(
            est_time=self.est_time,
            urgency=self.urgency,
            importance=self.importance,
            energy=self.energy,
            context=self.context,
            start_date=self.start_date,
        )


def sanitize_dependencies(subtasks: List[SubtaskSuggestion]) -> List[SubtaskSuggestion]:
    """Drop ``dependsOn`` entries that do not name a sibling subtask."""
    titles = {subtask.title for subtask in subtasks}
    cleaned: List[SubtaskSuggestion] = []
    for subtask in subtasks:
        dangling = [dep for dep in subtask.depends_on if dep not in titles]
        for dep in dangling:
            logger.warning("Dropping unknown dependency %r from subtask %r", dep, subtask.title)
        cleaned.append(subtask.model_copy(update={"depends_on": [dep for dep in subtask.depends_on if dep in titles]}))
    return cleaned


def parse_estimate_response(content: str | None) -> AIEstimate:
    """Pull the JSON object out of a model reply and validate it."""
    match = _JSON_OBJECT_RE.search(content or "")
    if not match:
        raise EstimationError("Invalid JSON response from AI: no object found.")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise EstimationError(f"Invalid JSON response from AI: {exc.msg}.") from exc
    if not isinstance(payload, dict):
        raise EstimationError("Invalid JSON response from AI: expected an object.")
    try:
        estimate = AIEstimate.model_validate(payload)
    except ValidationError as exc:
        raise EstimationError(f"AI response is missing required fields: {exc.error_count()} problem(s).") from exc
    if estimate.subtasks:
        estimate = estimate.model_copy(update={"subtasks": sanitize_dependencies(estimate.subtasks)})
    return estimate


def build_prompt(task: PlanItem) -> str:
    return USER_PROMPT_TEMPLATE.format(
        title=task.title,
        description=extract_description(task.body),
        threshold=SUBTASK_THRESHOLD_MIN,
    )


class OpenAIEstimationService(EstimationService):
    """Estimation collaborator backed by the OpenAI chat completions API."""

    def __init__(self, settings: Optional[Settings] = None, client: Any = None) -> None:
        self._settings = settings or get_settings()
        self._client = client

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        api_key = self._settings.openai_api_key
        if not api_key:
            raise EstimationError("OpenAI API key is not configured.")
        self._client = openai.OpenAI(api_key=api_key)
        return self._client

    def estimate(self, task: PlanItem) -> AIEstimate:
        client = self._get_client()
        metadata = {"task_id": task.id, "model": self._settings.estimation_model}
        with trace("planner.estimate", metadata=metadata):
            try:
                completion = client.chat.completions.create(
                    model=self._settings.estimation_model,
                    response_format={"type": "json_object"},
                    temperature=self._settings.estimation_temperature,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": build_prompt(task)},
                    ],
                )
            except openai.OpenAIError as exc:
                logger.warning("Estimation request for task %s failed: %s", task.id, exc)
                raise EstimationError("Failed to get a response from the estimation service.") from exc

            content = completion.choices[0].message.content if completion.choices else None
            estimate = parse_estimate_response(content)
        logger.info(
            "Estimated task %s: %s min, %s subtasks",
            task.id,
            estimate.est_time,
            len(estimate.subtasks),
        )
        return estimate
