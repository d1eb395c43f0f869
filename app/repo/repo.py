from __future__ import annotations
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import GovernedAccount, StreamingTreasury
from app.states.form import Governance, GovernedTokenAccount, MintAccount, MintInfo, Treasury


def _to_governed_token_account(row: GovernedAccount) -> GovernedTokenAccount:
    mint = None
    if row.mint and row.decimals is not None:
        mint = MintAccount(public_key=row.mint, account=MintInfo(decimals=row.decimals))
    return GovernedTokenAccount(
        pubkey=row.pubkey,
        governance=Governance(pubkey=row.governance, realm=row.realm),
        owner=row.owner,
        mint=mint,
        amount=row.amount,
        is_nft=bool(row.is_nft),
    )


# governed accounts
async def upsert_governed_account(session: AsyncSession, account: GovernedTokenAccount) -> None:
    row = (await session.execute(
        select(GovernedAccount).where(GovernedAccount.pubkey == account.pubkey)
    )).scalar_one_or_none()
    if row is None:
        last = (await session.execute(select(func.max(GovernedAccount.position)))).scalar()
        row = GovernedAccount(pubkey=account.pubkey, position=(last or 0) + 1)
        session.add(row)
    row.governance = account.governance.pubkey
    row.realm = account.governance.realm
    row.owner = account.owner
    row.mint = account.mint.public_key if account.mint else None
    row.decimals = account.mint.account.decimals if account.mint else None
    row.amount = account.amount
    row.is_nft = account.is_nft
    await session.commit()

async def list_governed_token_accounts(
    session: AsyncSession, governance: Optional[str] = None, include_nfts: bool = False
) -> List[GovernedTokenAccount]:
    q = select(GovernedAccount).order_by(GovernedAccount.position, GovernedAccount.id)
    if governance:
        q = q.where(GovernedAccount.governance == governance)
    if not include_nfts:
        q = q.where(GovernedAccount.is_nft.is_(False))
    rows = (await session.execute(q)).scalars().all()
    return [_to_governed_token_account(r) for r in rows]

async def list_account_mints(session: AsyncSession) -> List[Tuple[str, Optional[int]]]:
    """Пары (минт, точность) из базы, включая строки с неизвестной точностью."""
    rows = (await session.execute(
        select(GovernedAccount.mint, GovernedAccount.decimals)
        .where(GovernedAccount.mint.is_not(None))
        .distinct()
    )).all()
    return [(mint, decimals) for mint, decimals in rows]

async def update_mint_decimals(session: AsyncSession, mint: str, decimals: int) -> None:
    """Обновляет точность у всех аккаунтов с этим минтом."""
    rows = (await session.execute(
        select(GovernedAccount).where(GovernedAccount.mint == mint)
    )).scalars().all()
    for row in rows:
        row.decimals = decimals
    await session.commit()

# treasuries
async def add_streaming_treasury(session: AsyncSession, treasury: Treasury, governance: Optional[str] = None) -> None:
    exists = (await session.execute(
        select(StreamingTreasury.id).where(StreamingTreasury.address == treasury.id)
    )).scalar_one_or_none()
    if exists is None:
        session.add(StreamingTreasury(
            address=treasury.id, name=treasury.name,
            associated_token=treasury.associated_token, governance=governance,
        ))
        await session.commit()

async def list_streaming_treasuries(session: AsyncSession, governance: Optional[str] = None) -> List[Treasury]:
    q = select(StreamingTreasury).order_by(StreamingTreasury.id)
    if governance:
        q = q.where(StreamingTreasury.governance == governance)
    rows = (await session.execute(q)).scalars().all()
    return [Treasury(id=r.address, name=r.name, associated_token=r.associated_token) for r in rows]
