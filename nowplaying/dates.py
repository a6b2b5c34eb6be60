"""Portuguese month names and date range phrasing."""

from .feed import DateRange

MONTH_NAMES = (
    'Janeiro',
    'Fevereiro',
    'Março',
    'Abril',
    'Maio',
    'Junho',
    'Julho',
    'Agosto',
    'Setembro',
    'Outubro',
    'Novembro',
    'Dezembro',
)


def month_name(month: int) -> str:
    """Return the month name for 1-12, or an empty string."""
    if 1 <= month <= len(MONTH_NAMES):
        return MONTH_NAMES[month - 1]
    return ''


def format_date_range(week: DateRange, lowercased: bool = False) -> str:
    """
    Render a listing week as on-image / file-name text.

    Same month:   "3 a 10 de Maio"
    Cross month:  "28 de Abril a 2 de Maio"

    ``lowercased`` only affects the month tokens.
    """
    start, end = week.start, week.end

    end_month = month_name(end.month)
    if lowercased:
        end_month = end_month.lower()

    if start.month != end.month:
        start_month = month_name(start.month)
        if lowercased:
            start_month = start_month.lower()
        return f"{start.day} de {start_month} a {end.day} de {end_month}"

    return f"{start.day} a {end.day} de {end_month}"
