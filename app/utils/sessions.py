import logging
from datetime import datetime, timedelta

SESSION_TTL = timedelta(hours=1)


def purge_stale_sessions(sessions: dict, now: datetime | None = None, ttl: timedelta = SESSION_TTL) -> int:
    """Удаляет брошенные формы, которых не трогали дольше `ttl`.

    Args:
        sessions: Реестр user_id -> сессия; у сессии должно быть поле `touched_at`.
        now: Текущее время (для тестов).
        ttl: Сколько живёт форма без действий пользователя.

    Returns:
        int: Сколько сессий удалено.
    """
    now = now or datetime.now()
    stale = [uid for uid, s in sessions.items() if now - s.touched_at > ttl]
    for uid in stale:
        sessions.pop(uid, None)
    if stale:
        logging.info(f"[SESSIONS] purged {len(stale)} stale form(s)")
    return len(stale)
