"""
Контроллер формы «Fund streaming account» для предложения DAO.

Форма собирает три значения: казначейство-получатель (стриминговый аккаунт
Mean), токен-аккаунт DAO-источник и сумму. Любое изменение поля проходит
через `set_field`: ошибки формы сбрасываются, поле и сопутствующие поля
меняются одной заменой снимка, после чего сборщик инструкции заново
регистрируется в контексте предложения под индексом слота.

Сборщик (`get_instruction`) ссылается на сам контроллер, а не на снимок
формы, поэтому при позднем вызове собирает самое свежее состояние.
"""
from __future__ import annotations

from dataclasses import fields, replace
from decimal import Decimal
from typing import Awaitable, Callable, Iterable

from app.instructions.mean_fund_account import get_mean_fund_account_instruction
from app.proposal.context import NewProposalContext
from app.services.connection import Connection
from app.states.form import (
    Governance, GovernedTokenAccount, MeanFundAccount, MintInfo, Treasury, UiInstruction
)
from app.utils.units import MAX_SAFE_NUMBER, get_mint_min_amount_as_decimal, normalize_amount
from app.utils.formatting import precision
from app.validations import Schema, get_mean_fund_account_schema


FORM_FIELDS = {f.name for f in fields(MeanFundAccount)}

SchemaFactory = Callable[[MeanFundAccount], Schema]
InstructionRoutine = Callable[..., Awaitable[UiInstruction]]

# стадии формы; Ready/Invalid не хранятся, их определяет сборка
STAGE_EMPTY = "empty"
STAGE_DESTINATION = "destination_chosen"
STAGE_SOURCE = "source_chosen"
STAGE_AMOUNT = "amount_entered"


def filter_governed_accounts(
    accounts: Iterable[GovernedTokenAccount],
    treasury: Treasury | None,
) -> list[GovernedTokenAccount]:
    """Оставляет источники, чей минт принимает выбранное казначейство.

    Пока получатель не выбран, список пуст: источник нельзя выбрать раньше
    получателя, иначе можно собрать инструкцию с чужим токеном.
    """
    if treasury is None:
        return []
    return [
        a for a in accounts
        if a.mint is not None and a.mint.public_key == treasury.associated_token
    ]


class MeanFundAccountController:
    def __init__(
        self,
        *,
        index: int,
        governance: Governance | None,
        context: NewProposalContext,
        connection: Connection,
        schema_factory: SchemaFactory = get_mean_fund_account_schema,
        build_instruction: InstructionRoutine = get_mean_fund_account_instruction,
    ):
        self.index = index
        self.governance = governance
        self._context = context
        self._connection = connection
        self._schema_factory = schema_factory
        self._build_instruction = build_instruction
        self._form = MeanFundAccount()
        self._form_errors: dict[str, str] = {}
        self._register()

    # ---------- состояние ----------
    @property
    def form(self) -> MeanFundAccount:
        return self._form

    @property
    def form_errors(self) -> dict[str, str]:
        return dict(self._form_errors)

    def set_form_errors(self, errors: dict[str, str]) -> None:
        self._form_errors = dict(errors)

    def set_field(self, name: str, value, extra_fields: dict | None = None) -> MeanFundAccount:
        """Единственная мутация формы.

        Сбрасывает все ошибки, ставит поле `name` и поля из `extra_fields`
        одной заменой снимка, остальные поля не трогает. После замены
        сборщик перерегистрируется в контексте предложения.
        """
        changes = {name: value, **(extra_fields or {})}
        unknown = set(changes) - FORM_FIELDS
        if unknown:
            # mint_info тоже сюда попадает: он только вычисляется
            raise ValueError(f"Unknown or read-only form fields: {sorted(unknown)}")
        self._form_errors = {}
        self._form = replace(self._form, **changes)
        self._register()
        return self._form

    # ---------- производные значения ----------
    @property
    def mint_info(self) -> MintInfo | None:
        return self._form.mint_info

    @property
    def mint_min_amount(self) -> Decimal:
        mint = self.mint_info
        return get_mint_min_amount_as_decimal(mint) if mint is not None else Decimal(1)

    @property
    def current_precision(self) -> int:
        return precision(self.mint_min_amount)

    @property
    def amount_bounds(self) -> dict[str, Decimal]:
        """Подсказки для поля суммы: min, max и шаг."""
        step = self.mint_min_amount
        return {"min": step, "max": MAX_SAFE_NUMBER, "step": step}

    @property
    def stage(self) -> str:
        form = self._form
        if form.treasury is None:
            return STAGE_EMPTY
        if form.governed_token_account is None:
            return STAGE_DESTINATION
        if form.amount is None or form.amount == "":
            return STAGE_SOURCE
        return STAGE_AMOUNT

    # ---------- обработчики полей ----------
    def on_treasury_change(self, treasury: Treasury | None) -> MeanFundAccount:
        # новый получатель может принимать другой токен: источник сбрасывается
        return self.set_field("treasury", treasury, {"governed_token_account": None})

    def on_source_change(self, account: GovernedTokenAccount | None) -> MeanFundAccount:
        return self.set_field("governed_token_account", account)

    def set_amount(self, raw) -> MeanFundAccount:
        return self.set_field("amount", raw)

    def commit_amount(self) -> MeanFundAccount:
        """Blur поля суммы: зажать в диапазон и округлить до точности минта."""
        normalized = normalize_amount(self._form.amount, self.mint_min_amount)
        return self.set_field("amount", normalized)

    # ---------- выбор источника ----------
    @property
    def should_be_governed(self) -> bool:
        return self.index != 0 and self.governance is not None

    def governed_accounts(self, catalog: Iterable[GovernedTokenAccount]) -> list[GovernedTokenAccount]:
        accounts = filter_governed_accounts(catalog, self._form.treasury)
        if self.should_be_governed:
            accounts = [a for a in accounts if a.governance.pubkey == self.governance.pubkey]
        return accounts

    # ---------- сборка инструкции ----------
    async def get_instruction(self) -> UiInstruction:
        form = self._form
        schema = self._schema_factory(form)
        return await self._build_instruction(
            connection=self._connection,
            form=form,
            set_form_errors=self.set_form_errors,
            schema=schema,
        )

    def _register(self) -> None:
        source = self._form.governed_token_account
        self._context.handle_set_instructions(
            {
                "governed_account": source.governance if source is not None else None,
                "get_instruction": self.get_instruction,
            },
            self.index,
        )
