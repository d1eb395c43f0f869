"""
Сборка инструкции `add_funds` программы Mean MSP для пополнения
стримингового аккаунта из казны DAO.

Артефакт: base64 от JSON-описания инструкции (программа, аккаунты, данные),
его дальше забирает конвейер создания предложения.
"""
import base64
import hashlib
import logging
import struct
from decimal import DecimalException
from typing import Callable

from pydantic import BaseModel

from app.services.connection import Connection, DEVNET, MAINNET
from app.states.form import MeanFundAccount, UiInstruction
from app.utils.formatting import parse_decimal
from app.utils.units import U64_MAX, get_mint_natural_amount_from_decimal
from app.validations import Schema

logger = logging.getLogger(__name__)

MSP_PROGRAM_ID = {
    MAINNET: "MSPCUMbLfy2MeT6geLMMzrUkv1Tx88XRApaVRdyxTuu",
    DEVNET: "MSPdQo5ZdrPh6rU1LsvUv5nRhAnj1mj6YQEqBUq8YwZ",
}
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

# anchor: первые 8 байт sha256("global:<имя метода>")
ADD_FUNDS_DISCRIMINATOR = hashlib.sha256(b"global:add_funds").digest()[:8]


class AccountMeta(BaseModel):
    pubkey: str
    is_signer: bool
    is_writable: bool


class InstructionData(BaseModel):
    program_id: str
    accounts: list[AccountMeta]
    data: str                             # base64


def serialize_instruction_to_base64(ix: InstructionData) -> str:
    return base64.b64encode(ix.model_dump_json().encode()).decode()


def encode_add_funds(amount: int) -> bytes:
    return ADD_FUNDS_DISCRIMINATOR + struct.pack("<Q", amount)


def validate_instruction(schema: Schema, form: MeanFundAccount,
                         set_form_errors: Callable[[dict], None]) -> bool:
    errors = schema.validate(form)
    set_form_errors(errors)
    return not errors


async def get_mean_fund_account_instruction(
    *,
    connection: Connection,
    form: MeanFundAccount,
    set_form_errors: Callable[[dict], None],
    schema: Schema,
) -> UiInstruction:
    """Валидирует форму и собирает инструкцию пополнения.

    Никогда не бросает исключений: любые проблемы уходят в `set_form_errors`,
    а наружу возвращается `UiInstruction(is_valid=False)`.

    Args:
        connection: RPC-соединение (кластер определяет ID программы).
        form: Текущий снимок формы.
        set_form_errors: Установщик ошибок полей формы.
        schema: Схема, построенная из этой же формы.

    Returns:
        UiInstruction: Готовая инструкция или маркер «не готово».
    """
    source = form.governed_token_account
    governance = source.governance if source is not None else None
    not_ready = UiInstruction(serialized_instruction="", is_valid=False, governance=governance)

    if not validate_instruction(schema, form, set_form_errors):
        return not_ready

    mint_info = form.mint_info
    decimals = mint_info.decimals if mint_info is not None else 0
    value = parse_decimal(form.amount)
    if value is None:
        set_form_errors({"amount": "Amount is required"})
        return not_ready
    try:
        natural = get_mint_natural_amount_from_decimal(value, decimals)
    except DecimalException:
        natural = None
    if natural is None or natural > U64_MAX:
        set_form_errors({"amount": "Amount is too large"})
        return not_ready

    treasury = form.treasury
    ix = InstructionData(
        program_id=MSP_PROGRAM_ID.get(connection.cluster, MSP_PROGRAM_ID[MAINNET]),
        accounts=[
            AccountMeta(pubkey=source.owner, is_signer=True, is_writable=True),
            AccountMeta(pubkey=source.pubkey, is_signer=False, is_writable=True),
            AccountMeta(pubkey=treasury.id, is_signer=False, is_writable=True),
            AccountMeta(pubkey=treasury.associated_token, is_signer=False, is_writable=False),
            AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        ],
        data=base64.b64encode(encode_add_funds(natural)).decode(),
    )
    logger.info(f"[MSP] add_funds {natural} from {source.pubkey} to treasury {treasury.id}")
    return UiInstruction(
        serialized_instruction=serialize_instruction_to_base64(ix),
        is_valid=True,
        governance=governance,
    )
