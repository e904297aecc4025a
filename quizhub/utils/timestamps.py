from datetime import datetime

import pytz


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def to_iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = pytz.UTC.localize(moment)
    return moment.isoformat()


def parse_timestamp(value: str) -> datetime:
    """
    ISO-8601 строка -> aware datetime в UTC.
    Понимает и суффикс "Z" (так пишет JavaScript toISOString()).
    Время без зоны считается UTC.
    """
    if not isinstance(value, str):
        raise ValueError("Ожидалась строка ISO-8601")
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        return pytz.UTC.localize(moment)
    return moment.astimezone(pytz.UTC)
