from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_today() -> date:
    """Текущий календарный день в часовом поясе сервиса (для дневных лимитов)."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


def calculate_age(birth_date: date, today: date | None = None) -> int:
    today = today or local_today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def years_ago(today: date, years: int) -> date:
    """Та же дата `years` лет назад; 29 февраля сдвигается на 28-е."""
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        return today.replace(year=today.year - years, day=28)
