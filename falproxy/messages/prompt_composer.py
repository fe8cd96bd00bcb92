"""OpenAI chat messages -> fal any-llm prompt composition.

fal-ai/any-llm accepts a single ``prompt`` plus an optional ``system_prompt``,
each with its own length limit. The composer flattens the chat history into
those two slots:

- every system message is concatenated into the fixed system text, which is
  hard-cut to the system limit;
- user/assistant turns fill ``prompt`` newest-first, and once it is full they
  spill into whatever room the fixed system text left in ``system_prompt``,
  after a separator line;
- older turns that fit in neither slot are dropped.

Turns are always placed whole, never split between slots.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from ..types import ChatMessage

logger = logging.getLogger("falproxy")

HISTORY_SEPARATOR = "\n\n-------下面是比较早之前的对话内容-----\n\n"

# Room kept after a non-empty fixed system text for the separator.
SEPARATOR_RESERVE = 4

ROLE_PREFIXES = {
    "system": "System",
    "user": "Human",
    "assistant": "Assistant",
}


@dataclass(frozen=True)
class PromptBudgets:
    """Character limits for the two fal prompt slots."""

    system_prompt_limit: int
    prompt_limit: int


@dataclass(frozen=True)
class ComposedPrompt:
    system_prompt: str
    prompt: str


def _content_text(content: Any) -> str:
    if content is None:
        return ""
    return str(content)


def format_message_block(message: ChatMessage) -> tuple[Optional[str], Optional[str]]:
    """Format one chat message as a prompt block.

    Returns:
        Tuple of (role, block). block is None for unsupported roles.
    """
    role = message.get("role") if isinstance(message, Mapping) else None
    prefix = ROLE_PREFIXES.get(role) if isinstance(role, str) else None
    if prefix is None:
        logger.warning(f"Unsupported role: {role}")
        return role, None
    content = _content_text(message.get("content"))
    return role, f"{prefix}: {content}\n\n"


def _history_budget(fixed_system: str, system_prompt_limit: int) -> int:
    if not fixed_system:
        return max(0, system_prompt_limit)
    occupied = len(fixed_system) + SEPARATOR_RESERVE
    return max(0, system_prompt_limit - occupied)


def compose_prompt(
    messages: Sequence[ChatMessage],
    budgets: PromptBudgets,
) -> ComposedPrompt:
    """Compose fal ``system_prompt`` and ``prompt`` from chat messages.

    Args:
        messages: Chat messages in chronological order.
        budgets: Character limits for both slots.

    Returns:
        The composed prompt pair. Never raises for message-shaped input.
    """
    system_limit = budgets.system_prompt_limit
    prompt_limit = budgets.prompt_limit
    logger.debug(f"Original messages count: {len(messages)}")

    fixed_system = ""
    conversation_blocks: list[str] = []
    for message in messages:
        role, block = format_message_block(message)
        if block is None:
            continue
        if role == "system":
            fixed_system += block
        else:
            conversation_blocks.append(block)

    if len(fixed_system) > system_limit:
        original_length = len(fixed_system)
        fixed_system = fixed_system[:max(0, system_limit)]
        logger.warning(
            f"Combined system messages truncated from {original_length} to {system_limit}"
        )
    fixed_system = fixed_system.strip()

    history_limit = _history_budget(fixed_system, system_limit)
    logger.debug(
        f"Trimmed fixed system prompt length: {len(fixed_system)}. "
        f"Remaining system history limit: {history_limit}"
    )

    prompt_blocks: list[str] = []
    history_blocks: list[str] = []
    prompt_length = 0
    history_length = 0
    prompt_full = False
    history_full = history_limit <= 0

    for index in range(len(conversation_blocks) - 1, -1, -1):
        if prompt_full and history_full:
            logger.debug(
                f"Both prompt and system history slots full. "
                f"Omitting older messages from index {index}."
            )
            break

        block = conversation_blocks[index]
        block_length = len(block)

        if not prompt_full:
            if prompt_length + block_length <= prompt_limit:
                prompt_blocks.insert(0, block)
                prompt_length += block_length
                continue
            prompt_full = True
            logger.debug(f"Prompt limit ({prompt_limit}) reached. Trying system history slot.")

        if not history_full:
            if history_length + block_length <= history_limit:
                history_blocks.insert(0, block)
                history_length += block_length
                continue
            history_full = True
            logger.debug(f"System history limit ({history_limit}) reached.")

    prompt = "".join(prompt_blocks).strip()
    system_history = "".join(history_blocks).strip()

    if fixed_system and system_history:
        system_prompt = fixed_system + HISTORY_SEPARATOR + system_history
    else:
        system_prompt = fixed_system or system_history

    logger.debug(
        f"Final system_prompt length: {len(system_prompt)}, prompt length: {len(prompt)}"
    )
    return ComposedPrompt(system_prompt=system_prompt, prompt=prompt)
