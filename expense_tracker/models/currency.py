"""
Currency display preferences.

Amounts are stored without a currency; the selected currency only decides
the symbol and the number of decimals used when an amount is shown.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Currency(str, Enum):
    """Supported display currencies. The first one is the default."""
    USD = "USD"
    INR = "INR"


class CurrencyInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: Currency
    symbol: str = Field(..., min_length=1)
    decimals: int = Field(..., ge=0, le=4)


CURRENCIES: dict[Currency, CurrencyInfo] = {
    Currency.USD: CurrencyInfo(code=Currency.USD, symbol="$", decimals=2),
    Currency.INR: CurrencyInfo(code=Currency.INR, symbol="₹", decimals=0),
}

DEFAULT_CURRENCY = next(iter(CURRENCIES))


def parse_currency(code: Optional[str]) -> Optional[Currency]:
    """Currency for a stored code, or None if the code is absent or unknown."""
    if not code:
        return None
    try:
        return Currency(code.strip().upper())
    except ValueError:
        return None


def format_money(amount: Union[Decimal, int, float], currency: Currency) -> str:
    """
    Render an amount using the currency's symbol and precision.

    Example:
        format_money(Decimal("1234.5"), Currency.USD) -> "$1,234.50"
    """
    info = CURRENCIES[currency]
    value = Decimal(str(amount))
    return f"{info.symbol}{value:,.{info.decimals}f}"
