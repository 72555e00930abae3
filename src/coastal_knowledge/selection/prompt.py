"""System prompt assembly from selected knowledge."""

from typing import Sequence, Union

from ..models.knowledge import CONTENT_TYPE_COMMAND, CONTENT_TYPE_RULE
from ..models.selection import LocatedItem, Selectable

RULES_HEADER = "You must follow these department-specific rules in order of priority:"
COMMANDS_HEADER = "Available commands you can suggest or reference:"


def _unwrap(items: Sequence[Union[LocatedItem, Selectable]]) -> list[Selectable]:
    return [entry.item if isinstance(entry, LocatedItem) else entry for entry in items]


def _numbered(instructions: list[str]) -> str:
    return "\n".join(f"{index}. {text}" for index, text in enumerate(instructions, start=1))


def generate_knowledge_prompt(items: Sequence[Union[LocatedItem, Selectable]]) -> str:
    """Render selected rules and commands as a system prompt block.

    Items keep the order they were given in. Smart rules and SOPs are never
    rendered.
    """
    items = _unwrap(items)
    if not items:
        return ""

    rules = [item for item in items if item.type == CONTENT_TYPE_RULE and item.ai_instructions]
    commands = [item for item in items if item.type == CONTENT_TYPE_COMMAND]

    prompt = ""

    if rules:
        instructions = _numbered([rule.ai_instructions for rule in rules])
        prompt += f"{RULES_HEADER}\n\n{instructions}\n\n"

    if commands:
        command_lines = "\n".join(f"- {cmd.title}: {cmd.command_body or ''}" for cmd in commands)
        prompt += f"{COMMANDS_HEADER}\n\n{command_lines}\n\n"

    return prompt


def generate_rule_prompt(rules: Sequence[Union[LocatedItem, Selectable]]) -> str:
    """Render legacy flat rules as a numbered instruction list."""
    rules = _unwrap(rules)
    if not rules:
        return ""
    return f"{RULES_HEADER}\n\n{_numbered([rule.ai_instructions for rule in rules])}"
