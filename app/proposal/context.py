"""
Контекст сборки предложения из нескольких инструкций.

Каждая форма инструкции регистрирует в своём слоте пару
`{"governed_account", "get_instruction"}`. Контекст не знает, как
инструкция собирается: он только хранит последнюю регистрацию слота
и по запросу вызывает все сборщики.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypedDict

from app.states.form import Governance, UiInstruction

logger = logging.getLogger(__name__)


class InstructionEntry(TypedDict):
    governed_account: Governance | None
    get_instruction: Callable[[], Awaitable[UiInstruction]]


class NewProposalContext:
    def __init__(self) -> None:
        self._slots: dict[int, InstructionEntry] = {}

    def handle_set_instructions(self, entry: InstructionEntry, index: int) -> None:
        # повторная регистрация слота заменяет прежнюю
        self._slots[index] = entry

    def remove_instruction(self, index: int) -> None:
        self._slots.pop(index, None)

    @property
    def instructions_data(self) -> list[InstructionEntry]:
        return [self._slots[i] for i in sorted(self._slots)]

    def entry(self, index: int) -> InstructionEntry | None:
        return self._slots.get(index)

    @property
    def governance(self) -> Governance | None:
        """Governance предложения: первая выбранная в слотах."""
        for item in self.instructions_data:
            if item["governed_account"] is not None:
                return item["governed_account"]
        return None

    async def get_instructions(self) -> list[UiInstruction]:
        result = []
        for index in sorted(self._slots):
            ix = await self._slots[index]["get_instruction"]()
            if not ix.is_valid:
                logger.info(f"[PROPOSAL] slot {index} is not ready")
            result.append(ix)
        return result
