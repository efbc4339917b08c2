"""Turns raw user input into commands or inference-ready prompts."""

from __future__ import annotations

from dataclasses import dataclass

from ..config import CodelveConfig
from ..context.builder import ContextBuilder
from ..logging import get_logger
from .constants import (
    CODE_KEYWORDS,
    COMMANDS,
    CONTEXT_PLACEHOLDER,
    DEFAULT_CODE_TEMPLATE,
    DEFAULT_GENERAL_TEMPLATE,
    GENERIC_INSTRUCTIONS,
    INSTRUCTION_RULES,
    QUERY_PLACEHOLDER,
)


@dataclass(frozen=True)
class PreparedQuery:
    """Outcome of processing one query: either a command or a prompt."""

    query: str
    command: str = ""
    prompt: str = ""
    is_codebase: bool = False

    @property
    def is_command(self) -> bool:
        return bool(self.command)


class QueryProcessor:
    """Classifies queries and fills the code or general prompt template."""

    def __init__(
        self,
        context_builder: ContextBuilder,
        *,
        code_template: str | None = None,
        general_template: str | None = None,
    ) -> None:
        self.context_builder = context_builder
        self.code_template = code_template or DEFAULT_CODE_TEMPLATE
        self.general_template = general_template or DEFAULT_GENERAL_TEMPLATE
        self.logger = get_logger("query")

    @classmethod
    def from_config(cls, config: CodelveConfig, context_builder: ContextBuilder) -> "QueryProcessor":
        prompts = config.prompts
        return cls(
            context_builder,
            code_template=prompts.code_template,
            general_template=prompts.general_template,
        )

    @staticmethod
    def extract_command(query: str) -> str:
        """Return the first known command the query starts with, or ``""``."""
        trimmed = query.strip()
        for command in COMMANDS:
            if trimmed == command or trimmed.startswith(command + " "):
                return command
        return ""

    def is_codebase_query(self, query: str) -> bool:
        lowered = query.lower()
        if any(keyword in lowered for keyword in CODE_KEYWORDS):
            return True
        return bool(self.context_builder.get_relevant_files(query, max_files=1))

    @staticmethod
    def format_instructions(query: str) -> str:
        lowered = query.lower()
        for keywords, instructions in INSTRUCTION_RULES:
            if any(keyword in lowered for keyword in keywords):
                return instructions
        return GENERIC_INSTRUCTIONS

    def process_query(self, query: str) -> str:
        """Return the command for in-band commands, otherwise the filled prompt."""
        prepared = self.prepare(query)
        return prepared.command if prepared.is_command else prepared.prompt

    def prepare(self, query: str) -> PreparedQuery:
        command = self.extract_command(query)
        if command:
            self.logger.info("Processing command: %s", command)
            return PreparedQuery(query=query, command=command)

        if self.is_codebase_query(query):
            self.logger.info("Processing codebase query")
            context = self.context_builder.build_context(query)
            prompt = _fill(self.code_template, CONTEXT_PLACEHOLDER, context)
            prompt = _fill(prompt, QUERY_PLACEHOLDER, query)
            prompt += "\n" + self.format_instructions(query)
            return PreparedQuery(query=query, prompt=prompt, is_codebase=True)

        self.logger.info("Processing general query")
        prompt = _fill(self.general_template, QUERY_PLACEHOLDER, query)
        return PreparedQuery(query=query, prompt=prompt)


def _fill(template: str, placeholder: str, value: str) -> str:
    """Replace the first ``placeholder``; a template without it is returned unchanged."""
    index = template.find(placeholder)
    if index < 0:
        return template
    return template[:index] + value + template[index + len(placeholder) :]
