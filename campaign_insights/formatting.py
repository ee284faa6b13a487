"""Display formatting shared by insight text, the dashboard and the DOCX export."""


def format_currency(value: float) -> str:
    """Compact dollar label: $1.2M, $15K, $950."""
    sign = "-" if value < 0 else ""
    amount = abs(value)
    if amount >= 1_000_000:
        return f"{sign}${amount / 1_000_000:.1f}M"
    if amount >= 1_000:
        return f"{sign}${amount / 1_000:.0f}K"
    return f"{sign}${amount:,.0f}"


def format_percentage(value: float, decimals: int = 1) -> str:
    """Percentage label for a value already on the 0-100 scale."""
    return f"{value:.{decimals}f}%"


def format_number(value: float, decimals: int = 0) -> str:
    return f"{value:,.{decimals}f}"
