from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from aiogram.fsm.state import StatesGroup, State


@dataclass(frozen=True)
class Governance:
    """Governance-аккаунт DAO, которому принадлежат кошельки-источники."""
    pubkey: str
    realm: str | None = None


@dataclass(frozen=True)
class MintInfo:
    """Метаданные минта токена (точность и т.п.)."""
    decimals: int
    supply: int | None = None


@dataclass(frozen=True)
class MintAccount:
    public_key: str
    account: MintInfo


@dataclass(frozen=True)
class GovernedTokenAccount:
    """Токен-аккаунт под управлением governance (источник средств)."""
    pubkey: str
    governance: Governance
    owner: str
    mint: MintAccount | None = None
    amount: int | None = None             # баланс в минимальных единицах
    is_nft: bool = False


@dataclass(frozen=True)
class Treasury:
    """Стриминговый казначейский аккаунт Mean (получатель средств)."""
    id: str
    name: str
    associated_token: str                 # минт, который принимает казначейство


@dataclass(frozen=True)
class MeanFundAccount:
    """Снимок формы «Fund streaming account».

    `mint_info` не хранится: он всегда вычисляется из выбранного
    `governed_token_account`, поэтому не может разойтись с ним.
    """
    governed_token_account: GovernedTokenAccount | None = None
    treasury: Treasury | None = None
    amount: str | Decimal | None = None   # str пока вводится, Decimal после blur

    @property
    def mint_info(self) -> MintInfo | None:
        acc = self.governed_token_account
        if acc is None or acc.mint is None:
            return None
        return acc.mint.account


@dataclass(frozen=True)
class UiInstruction:
    """Результат сборки инструкции для конвейера предложения.

    `is_valid=False` означает «не готово»: ошибки уже отданы в форму.
    """
    serialized_instruction: str
    is_valid: bool
    governance: Governance | None = None
    additional_serialized_instructions: list[str] = field(default_factory=list)


class Flow(StatesGroup):
    """Стадии сценария формы пополнения стримингового аккаунта."""
    form = State()
    amount = State()
