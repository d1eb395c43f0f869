from aiogram.utils.keyboard import InlineKeyboardBuilder
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from app.controllers.mean_fund_account import MeanFundAccountController
from app.states.form import GovernedTokenAccount, Treasury
from app.utils.formatting import fmt_money_str, normalize_amount_input

PAGE_SIZE = 8

STAGE_HINTS = {
    "empty": "Сначала выбери стриминговый аккаунт-получатель.",
    "destination_chosen": "Теперь выбери источник средств с тем же токеном.",
    "source_chosen": "Введи сумму пополнения.",
    "amount_entered": "Проверь данные и подтверди.",
}


def short(pubkey: str | None) -> str:
    if not pubkey:
        return "—"
    return f"{pubkey[:4]}…{pubkey[-4:]}" if len(pubkey) > 10 else pubkey


# ================== Рендер карточки ==================
def render_card(ctrl: MeanFundAccountController) -> str:
    form = ctrl.form
    errors = ctrl.form_errors
    bounds = ctrl.amount_bounds
    treasury = form.treasury.name if form.treasury else "—"
    source = short(form.governed_token_account.pubkey) if form.governed_token_account else "—"

    def err(name: str) -> str:
        return f"\n   ⚠️ <i>{errors[name]}</i>" if name in errors else ""

    return (
        f"💸 Пополнение стримингового аккаунта (инструкция #{ctrl.index + 1})\n\n"
        f"Получатель: <b>{treasury}</b>{err('treasury')}\n"
        f"Источник: <b>{source}</b>{err('governed_token_account')}\n"
        f"Сумма: <b>{fmt_money_str(form.amount)}</b>{err('amount')}\n"
        f"Мин. шаг: {normalize_amount_input(bounds['step'])}\n\n"
        f"{STAGE_HINTS[ctrl.stage]}"
    )


def _nav_row(active: str) -> list[InlineKeyboardButton]:
    def lab(tab: str, title: str):
        mark = "● " if tab == active else ""
        return InlineKeyboardButton(text=f"{mark}{title}", callback_data=f"go:{tab}")
    return [lab("treasury", "Получатель"), lab("source", "Источник"), lab("amount", "Сумма")]


def _paged(kb: InlineKeyboardBuilder, labels: list[str], prefix: str, page: int) -> None:
    start = page * PAGE_SIZE
    for i, text in enumerate(labels[start:start + PAGE_SIZE], start):
        kb.row(InlineKeyboardButton(text=text, callback_data=f"{prefix}:set:{i}"))
    total_pages = (len(labels) - 1) // PAGE_SIZE + 1 if labels else 1
    left = max(page - 1, 0); right = min(page + 1, total_pages - 1)
    kb.row(
        InlineKeyboardButton(text="⬅️", callback_data=f"{prefix}:page:{left}"),
        InlineKeyboardButton(text=f"{page + 1}/{total_pages}", callback_data="noop"),
        InlineKeyboardButton(text="➡️", callback_data=f"{prefix}:page:{right}"),
    )


# ================== Клавиатуры ==================
def kb_treasury_tab(treasuries: list[Treasury], selected: Treasury | None, page: int = 0) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.row(*_nav_row("treasury"))
    labels = [
        f"{t.name}{' ✅' if selected and selected.id == t.id else ''}"
        for t in treasuries
    ]
    _paged(kb, labels, "tr", page)
    if selected:
        kb.row(InlineKeyboardButton(text="✖️ Сбросить получателя", callback_data="tr:clear"))
    kb.row(InlineKeyboardButton(text="✅ Подтвердить", callback_data="submit"))
    return kb.as_markup()


def kb_source_tab(accounts: list[GovernedTokenAccount], selected: GovernedTokenAccount | None,
                  page: int = 0) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.row(*_nav_row("source"))
    labels = []
    for a in accounts:
        mark = " ✅" if selected and selected.pubkey == a.pubkey else ""
        labels.append(f"{short(a.pubkey)} · {short(a.governance.pubkey)}{mark}")
    if labels:
        _paged(kb, labels, "src", page)
    else:
        kb.row(InlineKeyboardButton(text="Нет подходящих аккаунтов", callback_data="noop"))
    kb.row(InlineKeyboardButton(text="✅ Подтвердить", callback_data="submit"))
    return kb.as_markup()


def kb_amount_tab() -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.row(*_nav_row("amount"))
    for row in [["1","2","3"],["4","5","6"],["7","8","9"],[".","0","⌫"]]:
        btns = []
        for t in row:
            cb = "backspace" if t == "⌫" else "num:" + t
            btns.append(InlineKeyboardButton(text=t, callback_data=cb))
        kb.row(*btns)
    kb.row(
        InlineKeyboardButton(text="🧹 Очистить", callback_data="clear"),
        InlineKeyboardButton(text="↩️ Готово", callback_data="amount:done"),
    )
    kb.row(InlineKeyboardButton(text="✅ Подтвердить", callback_data="submit"))
    return kb.as_markup()
