from aiogram import Bot
from decimal import Decimal, InvalidOperation


def fmt_money_str(s) -> str:
    """Форматирование суммы для карточки формы.

    Используется при выводе суммы пополнения пользователю, чтобы значение
    выглядело читабельно: с пробелами-разделителями тысяч. Дробная часть
    не обрезается, так как у токенов бывает до 9 знаков.

    Args:
        s: Строка или Decimal с числовым значением.

    Returns:
        str: Отформатированная строка, например '1 234.5678',
             либо исходное значение, если преобразование не удалось.
    """
    if s is None or s == "":
        return "—"
    v = parse_decimal(s)
    if v is None:
        return str(s)
    whole, _, frac = format(v, "f").partition(".")
    sign = "-" if whole.startswith("-") else ""
    whole = f"{int(whole.lstrip('-') or 0):,}".replace(",", " ")
    return f"{sign}{whole}.{frac}" if frac else f"{sign}{whole}"


def parse_decimal(s) -> Decimal | None:
    """Парсинг суммы, введённой пользователем.

    В отличие от проверки при сохранении, здесь не требуется `> 0`:
    диапазон приводится отдельно при нормализации.

    Args:
        s: Строка, число или None.

    Returns:
        Decimal | None: Конечное числовое значение или None, если ввод не число.
    """
    if s is None:
        return None
    if isinstance(s, Decimal):
        return s if s.is_finite() else None
    t = str(s).replace(" ", "").replace(",", ".")
    if not t:
        return None
    try:
        v = Decimal(t)
    except (InvalidOperation, ValueError):
        return None
    return v if v.is_finite() else None


def precision(value: Decimal) -> int:
    """Сколько знаков после точки нужно, чтобы точно записать значение.

    Пример: 0.001 -> 3, 1 -> 0, 2.50 -> 1.
    """
    if not value.is_finite():
        return 0
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent)


def normalize_amount_input(value) -> str:
    """Нормализация пользовательского ввода суммы для отображения.

    Убирает лишние нули и точку (например, '43.00' -> '43').

    Args:
        value: Введённое пользователем значение суммы (строка или число).

    Returns:
        str: Нормализованная строка суммы.
    """
    d = parse_decimal(value)
    if d is None:
        return str(value)
    s = format(d, "f")          # без экспоненты
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s or "0"


async def safe_delete(bot: Bot, chat_id: int, message_id: int | None):
    """Безопасное удаление сообщений в чате.

    Используется для очистки подсказок ввода суммы, чтобы чат оставался аккуратным.

    Args:
        bot (Bot): Экземпляр бота.
        chat_id (int): ID чата.
        message_id (int | None): ID сообщения для удаления.
    """
    if not message_id:
        return
    try:
        await bot.delete_message(chat_id, message_id)
    except Exception:
        pass


def amount_to_raw(value) -> str:
    """Строка суммы, к которой можно дописывать цифры с клавиатуры.

    После blur сумма хранится как Decimal, и `str()` даёт экспоненту
    ('1E-9'), поэтому Decimal записывается без неё. Сырой ввод
    возвращается как есть, чтобы не потерять набранную точку ('1.').
    """
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)
