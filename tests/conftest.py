import os

os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:TEST")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")

import pytest

from app.proposal.context import NewProposalContext
from app.services.connection import Connection
from app.states.form import Governance, GovernedTokenAccount, MintAccount, MintInfo, Treasury

USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
WSOL = "So11111111111111111111111111111111111111112"


def make_account(pubkey: str, mint: str, decimals: int, governance: str = "GovA111", amount: int | None = None):
    return GovernedTokenAccount(
        pubkey=pubkey,
        governance=Governance(pubkey=governance),
        owner=f"owner-{governance}",
        mint=MintAccount(public_key=mint, account=MintInfo(decimals=decimals)),
        amount=amount,
    )


@pytest.fixture
def usdc_treasury():
    return Treasury(id="TreasUsdc111", name="Grants stream", associated_token=USDC)


@pytest.fixture
def sol_treasury():
    return Treasury(id="TreasSol111", name="Validators stream", associated_token=WSOL)


@pytest.fixture
def catalog():
    return [
        make_account("UsdcAcc1", USDC, 6, governance="GovA111", amount=100_000_000),
        make_account("SolAcc1", WSOL, 9, governance="GovA111", amount=5_000_000_000),
        make_account("UsdcAcc2", USDC, 6, governance="GovB222", amount=1_000_000),
    ]


@pytest.fixture
def context():
    return NewProposalContext()


@pytest.fixture
def connection():
    return Connection("https://api.mainnet-beta.solana.com")


@pytest.fixture
def account_factory():
    return make_account
