"""
Presentation helpers applied when building responses.

The models only store raw values. Display strings are derived here.
"""
from datetime import datetime
from typing import Optional

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€"}


def format_booking_date(value: str) -> str:
    """'2099-01-01' -> 'January 1, 2099'"""
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d")
    except (TypeError, ValueError):
        return value
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def format_booking_time(value: str) -> str:
    """'13:00' -> '1:00 PM'"""
    try:
        hours, minutes = value.split(":")
        hour = int(hours)
    except (AttributeError, ValueError):
        return value
    ampm = "PM" if hour >= 12 else "AM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minutes} {ampm}"


def format_price(price: float, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{price:,.2f}"
    # RWF has no minor unit
    return f"{currency} {price:,.0f}"


def dimensions_string(dimensions: Optional[dict]) -> Optional[str]:
    if not dimensions:
        return None
    parts = [dimensions.get("width"), dimensions.get("depth"), dimensions.get("height")]
    return " × ".join(str(p) if p else "" for p in parts)


def rating_stars(rating: int) -> str:
    rating = max(0, min(5, int(rating)))
    return "★" * rating + "☆" * (5 - rating)
