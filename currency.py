from fastapi import APIRouter, Depends, Query, Request

from auth import AuthContext, get_auth_context
from errors import ValidationError
from schemas import ConversionOut, ConvertRequest, CurrencyOut

# Units of each currency per 1 USD.
USD_RATES = {
    "USD": ("US Dollar", "$", 1.0),
    "EUR": ("Euro", "€", 0.92),
    "GBP": ("British Pound", "£", 0.79),
    "JPY": ("Japanese Yen", "¥", 149.5),
    "INR": ("Indian Rupee", "₹", 83.2),
    "CAD": ("Canadian Dollar", "C$", 1.36),
    "AUD": ("Australian Dollar", "A$", 1.52),
    "CHF": ("Swiss Franc", "CHF", 0.88),
    "CNY": ("Chinese Yuan", "¥", 7.24),
    "MXN": ("Mexican Peso", "$", 17.1),
    "BRL": ("Brazilian Real", "R$", 4.97),
    "SGD": ("Singapore Dollar", "S$", 1.34),
}


class CurrencyService:
    def __init__(self, rates: dict = None):
        self.rates = rates or USD_RATES

    def _usd_rate(self, code: str) -> float:
        entry = self.rates.get(code.upper())
        if entry is None:
            raise ValidationError(f"Unsupported currency: {code}")
        return entry[2]

    def get_supported_currencies(self) -> list[CurrencyOut]:
        return [
            CurrencyOut(code=code, name=name, symbol=symbol)
            for code, (name, symbol, _) in self.rates.items()
        ]

    def get_exchange_rate(self, from_currency: str, to_currency: str) -> float:
        return round(self._usd_rate(to_currency) / self._usd_rate(from_currency), 6)

    def convert(self, amount: float, from_currency: str, to_currency: str) -> ConversionOut:
        rate = self.get_exchange_rate(from_currency, to_currency)
        return ConversionOut(
            amount=amount,
            from_currency=from_currency.upper(),
            to_currency=to_currency.upper(),
            rate=rate,
            converted_amount=round(amount * rate, 2),
        )


def get_currency_service(request: Request) -> CurrencyService:
    return request.app.state.currency


currency_router = APIRouter()


@currency_router.get("/currencies", response_model=list[CurrencyOut])
async def list_currencies(currency: CurrencyService = Depends(get_currency_service)):
    return currency.get_supported_currencies()


@currency_router.post("/currencies/convert", response_model=ConversionOut)
async def convert_currency(
    payload: ConvertRequest,
    ctx: AuthContext = Depends(get_auth_context),
    currency: CurrencyService = Depends(get_currency_service),
):
    return currency.convert(payload.amount, payload.from_currency, payload.to_currency)


@currency_router.get("/currency/rates")
async def exchange_rate(
    from_currency: str = Query(..., alias="from"),
    to_currency: str = Query(..., alias="to"),
    currency: CurrencyService = Depends(get_currency_service),
):
    return {"rate": currency.get_exchange_rate(from_currency, to_currency)}
