"""Currency formatting for human-readable messages"""


def format_cents(amount_cents: int, currency_symbol: str = "$") -> str:
    """12345 -> '$123.45', -500 -> '-$5.00'"""
    sign = "-" if amount_cents < 0 else ""
    units, cents = divmod(abs(amount_cents), 100)
    return f"{sign}{currency_symbol}{units:,}.{cents:02d}"
