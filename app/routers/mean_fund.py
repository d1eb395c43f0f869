from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from aiogram import Router, F
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from app.config import settings
from app.controllers.mean_fund_account import MeanFundAccountController
from app.db import get_session
from app.keyboards.form import render_card, kb_treasury_tab, kb_source_tab, kb_amount_tab
from app.proposal.context import NewProposalContext
from app.services.connection import Connection
from app.services.governance_assets import GovernanceAssets
from app.states.form import Flow, Governance, GovernedTokenAccount, Treasury
from app.utils.formatting import amount_to_raw
from app.utils.sessions import purge_stale_sessions

logger = logging.getLogger(__name__)

r = Router()

MAX_AMOUNT_LEN = 24


@dataclass
class FundSession:
    """Живёт в памяти, пока открыта форма: контроллер держит замыкание сборщика."""
    context: NewProposalContext
    controller: MeanFundAccountController
    treasuries: list[Treasury] = field(default_factory=list)
    catalog: list[GovernedTokenAccount] = field(default_factory=list)
    tab: str = "treasury"
    page: int = 0
    touched_at: datetime = field(default_factory=datetime.now)

    @property
    def sources(self) -> list[GovernedTokenAccount]:
        return self.controller.governed_accounts(self.catalog)


SESSIONS: dict[int, FundSession] = {}


def _markup(s: FundSession):
    form = s.controller.form
    if s.tab == "source":
        return kb_source_tab(s.sources, form.governed_token_account, s.page)
    if s.tab == "amount":
        return kb_amount_tab()
    return kb_treasury_tab(s.treasuries, form.treasury, s.page)


async def _redraw(cb: CallbackQuery, s: FundSession, note: str | None = None):
    s.touched_at = datetime.now()
    await cb.message.edit_text(render_card(s.controller), reply_markup=_markup(s), parse_mode="HTML")
    await cb.answer(note)


# ================== Хендлеры ==================
@r.message(Command("fund"))
async def start(m: Message, state: FSMContext):
    await state.clear()
    purge_stale_sessions(SESSIONS)
    connection = Connection(settings.SOLANA_RPC_URL, timeout=settings.RPC_TIMEOUT)
    async with await get_session() as session:
        assets = GovernanceAssets(session, connection)
        await assets.load(settings.GOVERNANCE)
        await assets.refresh_mints()
        catalog = assets.governed_token_accounts_without_nfts
        treasuries = assets.treasuries

    context = NewProposalContext()
    governance = Governance(pubkey=settings.GOVERNANCE) if settings.GOVERNANCE else None
    controller = MeanFundAccountController(
        index=0, governance=governance, context=context, connection=connection,
    )
    s = FundSession(context=context, controller=controller, treasuries=treasuries, catalog=catalog)
    SESSIONS[m.from_user.id] = s
    await state.set_state(Flow.form)
    await m.answer(render_card(controller), reply_markup=_markup(s), parse_mode="HTML")


@r.callback_query(F.data == "noop")
async def noop(cb: CallbackQuery):
    await cb.answer()


@r.callback_query(Flow.form, F.data.startswith("go:"))
async def go_tab(cb: CallbackQuery, state: FSMContext):
    s = SESSIONS.get(cb.from_user.id)
    if s is None:
        await cb.answer("Форма устарела, начни заново: /fund", show_alert=True); return
    if s.tab == "amount":
        # уход с поля суммы = blur
        s.controller.commit_amount()
    s.tab = cb.data.split(":", 1)[1]; s.page = 0
    await _redraw(cb, s)


@r.message(Command("cancel"))
async def cancel(m: Message, state: FSMContext):
    SESSIONS.pop(m.from_user.id, None)
    await state.clear()
    await m.answer("Форма закрыта")


# --- Получатель ---
@r.callback_query(Flow.form, F.data.startswith("tr:"))
async def treasury_cb(cb: CallbackQuery, state: FSMContext):
    s = SESSIONS.get(cb.from_user.id)
    if s is None:
        await cb.answer("Форма устарела, начни заново: /fund", show_alert=True); return
    _, op, *rest = cb.data.split(":")
    if op == "page":
        s.page = int(rest[0])
        await _redraw(cb, s); return
    if op == "clear":
        s.controller.on_treasury_change(None)
        await _redraw(cb, s, "Получатель сброшен"); return
    idx = int(rest[0])
    if idx >= len(s.treasuries):
        await cb.answer("Список изменился, выбери ещё раз"); return
    treasury = s.treasuries[idx]
    s.controller.on_treasury_change(treasury)
    s.tab = "source"; s.page = 0
    await _redraw(cb, s, f"Получатель: {treasury.name}")


# --- Источник ---
@r.callback_query(Flow.form, F.data.startswith("src:"))
async def source_cb(cb: CallbackQuery, state: FSMContext):
    s = SESSIONS.get(cb.from_user.id)
    if s is None:
        await cb.answer("Форма устарела, начни заново: /fund", show_alert=True); return
    _, op, value = cb.data.split(":", 2)
    if op == "page":
        s.page = int(value)
        await _redraw(cb, s); return
    sources = s.sources
    idx = int(value)
    if idx >= len(sources):
        await cb.answer("Список изменился, выбери ещё раз"); return
    s.controller.on_source_change(sources[idx])
    s.tab = "amount"; s.page = 0
    await _redraw(cb, s)


# --- Сумма ---
@r.callback_query(Flow.form, F.data.startswith("num:"))
async def on_num(cb: CallbackQuery, state: FSMContext):
    s = SESSIONS.get(cb.from_user.id)
    if s is None:
        await cb.answer("Форма устарела, начни заново: /fund", show_alert=True); return
    digit = cb.data.split(":", 1)[1]
    raw = amount_to_raw(s.controller.form.amount)
    if digit == "." and "." in raw:
        await cb.answer("Уже есть точка"); return
    if len(raw) >= MAX_AMOUNT_LEN:
        await cb.answer("Слишком длинно"); return
    s.controller.set_amount(raw + digit)
    await _redraw(cb, s)


@r.callback_query(Flow.form, F.data == "backspace")
async def on_backspace(cb: CallbackQuery, state: FSMContext):
    s = SESSIONS.get(cb.from_user.id)
    if s is None:
        await cb.answer("Форма устарела, начни заново: /fund", show_alert=True); return
    s.controller.set_amount(amount_to_raw(s.controller.form.amount)[:-1])
    await _redraw(cb, s)


@r.callback_query(Flow.form, F.data == "clear")
async def on_clear(cb: CallbackQuery, state: FSMContext):
    s = SESSIONS.get(cb.from_user.id)
    if s is None:
        await cb.answer("Форма устарела, начни заново: /fund", show_alert=True); return
    s.controller.set_amount("")
    await _redraw(cb, s, "Очищено")


@r.callback_query(Flow.form, F.data == "amount:done")
async def on_amount_done(cb: CallbackQuery, state: FSMContext):
    s = SESSIONS.get(cb.from_user.id)
    if s is None:
        await cb.answer("Форма устарела, начни заново: /fund", show_alert=True); return
    s.controller.commit_amount()
    await _redraw(cb, s)


# --- Подтверждение ---
@r.callback_query(Flow.form, F.data == "submit")
async def submit(cb: CallbackQuery, state: FSMContext):
    s = SESSIONS.get(cb.from_user.id)
    if s is None:
        await cb.answer("Форма устарела, начни заново: /fund", show_alert=True); return
    if s.tab == "amount":
        s.controller.commit_amount()
    instructions = await s.context.get_instructions()
    if not all(ix.is_valid for ix in instructions):
        await _redraw(cb, s, "Форма заполнена не полностью"); return

    governance = s.context.governance
    lines = [f"Governance: <code>{governance.pubkey if governance else '—'}</code>"]
    for i, ix in enumerate(instructions, 1):
        lines.append(f"#{i}: <code>{ix.serialized_instruction}</code>")
    logger.info(f"[PROPOSAL] user {cb.from_user.id} built {len(instructions)} instruction(s)")
    await cb.message.edit_text("\n\n".join(lines), parse_mode="HTML")
    SESSIONS.pop(cb.from_user.id, None)
    await state.clear()
    await cb.answer("Инструкция готова")
