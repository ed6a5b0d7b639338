"""Operator prompts.

The purchase flow only depends on the ``Prompt`` protocol so tests and
non-interactive runs can supply canned answers.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

import questionary

PromptType = Literal["confirm", "list"]


@dataclass(frozen=True)
class PromptSpec:
    """A single question for the operator."""

    name: str
    message: str
    type: PromptType
    choices: tuple[str, ...] = ()
    default: Any = None


class Prompt(Protocol):
    """Asks the operator a question and returns the answer.

    ``None`` means the question was aborted without an answer.
    """

    async def __call__(self, spec: PromptSpec) -> Any: ...


class QuestionaryPrompt:
    """Interactive terminal prompts backed by questionary."""

    def __init__(self, style: questionary.Style | None = None):
        self.style = style

    async def __call__(self, spec: PromptSpec) -> Any:
        if spec.type == "confirm":
            question = questionary.confirm(
                spec.message,
                default=True if spec.default is None else bool(spec.default),
                style=self.style,
            )
        elif spec.type == "list":
            question = questionary.select(
                spec.message,
                choices=list(spec.choices),
                default=spec.default,
                style=self.style,
            )
        else:
            raise ValueError(f"Unsupported prompt type: {spec.type}")

        return await question.ask_async()


@dataclass
class CannedPrompt:
    """Answers prompts from a fixed mapping of prompt name to answer.

    Used for ``--yes`` runs. Prompts without a canned answer fall back to the
    prompt's own default, so a list prompt with no default yields ``None``.
    """

    answers: Mapping[str, Any] = field(default_factory=dict)
    asked: list[PromptSpec] = field(default_factory=list)

    async def __call__(self, spec: PromptSpec) -> Any:
        self.asked.append(spec)
        if spec.name in self.answers:
            return self.answers[spec.name]
        return spec.default
