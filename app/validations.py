"""
Схемы валидации форм инструкций.

Схема строится из текущего состояния формы в момент сборки инструкции
(`get_mean_fund_account_schema(form)`), а не заранее: баланс и точность
источника берутся из выбранного аккаунта. Сама проверка выполняется
pydantic-моделью, ошибки возвращаются словарём `{поле: сообщение}`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from app.states.form import GovernedTokenAccount, MeanFundAccount, Treasury
from app.utils.formatting import parse_decimal
from app.utils.units import MAX_SAFE_NUMBER, get_mint_natural_amount_from_decimal


class MeanFundAccountModel(BaseModel):
    # порядок полей важен: amount проверяется последним и видит уже проверенные
    governed_token_account: Optional[Any] = None
    treasury: Optional[Any] = None
    amount: Optional[Any] = None

    @field_validator("governed_token_account")
    @classmethod
    def _source_required(cls, v):
        if not isinstance(v, GovernedTokenAccount):
            raise PydanticCustomError("required", "Source of funds is required")
        return v

    @field_validator("treasury")
    @classmethod
    def _treasury_required(cls, v, info: ValidationInfo):
        if not isinstance(v, Treasury):
            raise PydanticCustomError("required", "Streaming account destination is required")
        source = info.data.get("governed_token_account")
        # источник без минта тоже считается чужим токеном
        if source is not None and (source.mint is None or source.mint.public_key != v.associated_token):
            raise PydanticCustomError(
                "mismatch", "Streaming account does not accept the token of the selected source"
            )
        return v

    @field_validator("amount")
    @classmethod
    def _amount_positive_and_covered(cls, v, info: ValidationInfo):
        value = parse_decimal(v)
        if value is None or value <= 0:
            raise PydanticCustomError("required", "Amount is required")
        if value > MAX_SAFE_NUMBER:
            raise PydanticCustomError("too_large", "Amount is too large")
        ctx = info.context or {}
        balance = ctx.get("balance")
        decimals = ctx.get("decimals")
        if balance is not None and decimals is not None:
            if get_mint_natural_amount_from_decimal(value, decimals) > balance:
                raise PydanticCustomError("funds", "Insufficient funds")
        return value


@dataclass(frozen=True)
class Schema:
    """Схема, привязанная к контексту формы (баланс и точность источника)."""
    model: type[BaseModel]
    context: dict[str, Any] = field(default_factory=dict)

    def validate(self, form: MeanFundAccount) -> dict[str, str]:
        data = {
            "governed_token_account": form.governed_token_account,
            "treasury": form.treasury,
            "amount": form.amount,
        }
        try:
            self.model.model_validate(data, context=self.context)
        except ValidationError as e:
            errors: dict[str, str] = {}
            for err in e.errors():
                name = str(err["loc"][0]) if err["loc"] else "__all__"
                errors.setdefault(name, err["msg"])
            return errors
        return {}


def get_mean_fund_account_schema(form: MeanFundAccount) -> Schema:
    source = form.governed_token_account
    mint_info = form.mint_info
    context = {
        "balance": source.amount if source is not None else None,
        "decimals": mint_info.decimals if mint_info is not None else None,
    }
    return Schema(model=MeanFundAccountModel, context=context)
