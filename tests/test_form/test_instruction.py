import asyncio
import base64
import json
from decimal import Decimal

from pydantic import BaseModel

from app.instructions.mean_fund_account import (
    ADD_FUNDS_DISCRIMINATOR, MSP_PROGRAM_ID, get_mean_fund_account_instruction
)
from app.services.connection import Connection
from app.states.form import Governance, GovernedTokenAccount, MeanFundAccount
from app.validations import Schema, get_mean_fund_account_schema


def build(connection, form):
    errors = {}
    ix = asyncio.run(get_mean_fund_account_instruction(
        connection=connection,
        form=form,
        set_form_errors=errors.update,
        schema=get_mean_fund_account_schema(form),
    ))
    return ix, errors


def test_schema_reports_required_fields():
    errors = get_mean_fund_account_schema(MeanFundAccount()).validate(MeanFundAccount())
    assert errors == {
        "governed_token_account": "Source of funds is required",
        "treasury": "Streaming account destination is required",
        "amount": "Amount is required",
    }


def test_schema_rejects_mismatched_asset(usdc_treasury, catalog):
    form = MeanFundAccount(governed_token_account=catalog[1], treasury=usdc_treasury, amount=Decimal("1"))
    errors = get_mean_fund_account_schema(form).validate(form)
    assert list(errors) == ["treasury"]


def test_schema_rejects_non_numeric_amount(usdc_treasury, catalog):
    form = MeanFundAccount(governed_token_account=catalog[0], treasury=usdc_treasury, amount="12..5")
    errors = get_mean_fund_account_schema(form).validate(form)
    assert errors == {"amount": "Amount is required"}


def test_builds_devnet_program_id(usdc_treasury, catalog):
    connection = Connection("https://api.devnet.solana.com")
    form = MeanFundAccount(governed_token_account=catalog[0], treasury=usdc_treasury, amount=Decimal("0.5"))
    ix, errors = build(connection, form)
    assert errors == {}
    payload = json.loads(base64.b64decode(ix.serialized_instruction))
    assert payload["program_id"] == MSP_PROGRAM_ID["devnet"]
    assert base64.b64decode(payload["data"])[:8] == ADD_FUNDS_DISCRIMINATOR
    assert payload["accounts"][0]["is_signer"] is True


def test_not_ready_keeps_source_governance(connection, usdc_treasury, catalog):
    form = MeanFundAccount(governed_token_account=catalog[0], treasury=usdc_treasury, amount=None)
    ix, errors = build(connection, form)
    assert not ix.is_valid
    assert ix.governance == catalog[0].governance
    assert errors == {"amount": "Amount is required"}


def test_amount_overflowing_u64_becomes_field_error(connection, account_factory, usdc_treasury):
    source = account_factory("Big", usdc_treasury.associated_token, 9, amount=None)
    form = MeanFundAccount(governed_token_account=source, treasury=usdc_treasury, amount=Decimal("9007199254740991"))
    ix, errors = build(connection, form)
    assert not ix.is_valid
    assert errors == {"amount": "Amount is too large"}


class AcceptAll(BaseModel):
    pass


def test_huge_raw_amount_is_rejected_by_schema(connection, usdc_treasury, catalog, account_factory):
    with_balance = MeanFundAccount(governed_token_account=catalog[0], treasury=usdc_treasury, amount="1e999999")
    ix, errors = build(connection, with_balance)
    assert not ix.is_valid
    assert errors == {"amount": "Amount is too large"}

    no_balance = account_factory("NoBal", usdc_treasury.associated_token, 6, amount=None)
    form = MeanFundAccount(governed_token_account=no_balance, treasury=usdc_treasury, amount="1e999999")
    ix, errors = build(connection, form)
    assert not ix.is_valid
    assert errors == {"amount": "Amount is too large"}


def test_builder_turns_decimal_overflow_into_field_error(connection, usdc_treasury, catalog):
    form = MeanFundAccount(governed_token_account=catalog[0], treasury=usdc_treasury, amount="1e999999")
    errors = {}
    ix = asyncio.run(get_mean_fund_account_instruction(
        connection=connection,
        form=form,
        set_form_errors=errors.update,
        schema=Schema(model=AcceptAll),
    ))
    assert not ix.is_valid
    assert errors == {"amount": "Amount is too large"}


def test_source_without_mint_is_a_mismatch(connection, usdc_treasury):
    source = GovernedTokenAccount(
        pubkey="NoMint", governance=Governance(pubkey="GovA111"), owner="o", mint=None, amount=10,
    )
    form = MeanFundAccount(governed_token_account=source, treasury=usdc_treasury, amount=Decimal("1"))
    ix, errors = build(connection, form)
    assert not ix.is_valid
    assert list(errors) == ["treasury"]
