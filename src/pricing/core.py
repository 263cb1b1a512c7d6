"""
core.py — Domain Primitive per prezzi pagabili

================================================================================
DESIGN PRINCIPLES
================================================================================

1. RAPPRESENTAZIONE INTERNA
   decimal.Decimal a precisione arbitraria. Mai floating point internamente.
   I float in ingresso passano da str(), quindi si conserva la loro forma
   più corta (12.34567 resta 12.34567, non 12.3456699999999997...).

2. CURRENCY GUARD
   Operazioni tra valute diverse sollevano CurrencyMismatchError (TypeError).
   Eccezione documentata: uno zero è neutro e adotta la valuta dell'altro
   operando, così Price.zero() può fare da accumulatore iniziale.

3. IMMUTABILITA
   Frozen dataclass. Ogni operazione restituisce nuova istanza.

4. PAYABLE
   L'importo interno può avere decimali arbitrari (es. dopo tax_from_gross).
   get_payable() lo arrotonda alla minor unit effettivamente pagabile,
   secondo una PayablePolicy (EUR -> HALF_UP a 100, miles/points -> FLOOR a 1).

5. SPLIT ESATTO
   split_in_payables(n) garantisce sum(parts) == get_payable()
   (Largest Remainder Method sulle minor unit intere).

================================================================================
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import (
    Context,
    Decimal,
    InvalidOperation,
    DivisionByZero,
    Overflow,
    MAX_PREC,
    ROUND_DOWN,
    ROUND_HALF_EVEN,
)
from enum import Enum
from collections.abc import Mapping
from types import MappingProxyType
from typing import Union
import json
import logging
import re


logger = logging.getLogger(__name__)

DecimalLike = Union[Decimal, int, float, str]


# ==============================================================================
# ERRORS
# ==============================================================================

class PricingError(Exception):
    """Base per tutti gli errori di dominio del pacchetto."""


class CurrencyMismatchError(PricingError, TypeError):
    """Due importi non-zero con valute diverse combinati da un operatore."""


class InvalidSplitCountError(PricingError, ValueError):
    """split_in_payables() chiamato con count <= 0."""


class EmptyAggregateError(PricingError, ValueError):
    """sum_all() chiamato senza argomenti."""


class DecodeError(PricingError, ValueError):
    """Payload serializzato malformato."""


# ==============================================================================
# DECIMAL CONTEXTS
# ==============================================================================

# Limite sull'esponente (adjusted) di un importo: oltre, somme e confronti
# espanderebbero il coefficiente a milioni di cifre.
MAX_EXPONENT = 1000

# Somma, sottrazione e moltiplicazione sono esatte: nessun limite di cifre.
# L'overflow non è intercettato: produce Infinity, rifiutato da Price.
_EXACT = Context(
    prec=MAX_PREC,
    Emax=MAX_EXPONENT,
    Emin=-MAX_EXPONENT,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, DivisionByZero],
)

# Le divisioni possono non terminare (1/3), quindi serve un limite.
DIVISION_PRECISION = 50

_DIVISION = Context(
    prec=DIVISION_PRECISION,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, DivisionByZero, Overflow],
)

LIKELY_EQUAL_TOLERANCE = Decimal("0.000000001")

# Oltre questa soglia (in minor unit) l'importo non viene arrotondato.
MAX_ROUNDABLE = 2**63 - 1

_ZERO = Decimal(0)
_HALF = Decimal("0.5")
_HUNDRED = Decimal(100)

# Forma ammessa per amount sul filo: niente spazi, underscore, NaN o Infinity.
_WIRE_AMOUNT = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def _to_decimal(value: DecimalLike) -> Decimal:
    """Converte in Decimal. I float passano da str() per evitare l'espansione binaria."""
    if isinstance(value, bool):
        raise TypeError("bool non è un importo valido")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as e:
            raise ValueError(f"Importo non valido: {value!r}") from e
    else:
        raise TypeError(
            f"Tipo non supportato per un importo: {type(value).__name__}"
        )
    if not result.is_finite():
        raise ValueError(f"Importo non finito: {value!r}")
    if result and abs(result.adjusted()) > MAX_EXPONENT:
        raise ValueError(f"Importo fuori scala: esponente {result.adjusted()}")
    return result


# ==============================================================================
# ROUNDING STRATEGIES
# ==============================================================================

class RoundingMode(Enum):
    """
    Strategie di arrotondamento verso il payable.

    - FLOOR: verso -infinito (1.119 -> 1.11, -1.111 -> -1.12)
    - CEIL: verso +infinito (1.111 -> 1.12, -1.119 -> -1.11)
    - HALF_UP: 0.5 si allontana da zero (2.5 -> 3, -2.5 -> -3)
    - HALF_DOWN: 0.5 va verso zero (2.5 -> 2, -2.5 -> -2)

    I valori stringa sono quelli usati nel formato storico.
    """
    FLOOR = "floor"
    CEIL = "ceil"
    HALF_UP = "halfup"
    HALF_DOWN = "halfdown"


def _should_increment(mode: RoundingMode, remainder: Decimal, negative: bool) -> bool:
    """
    Decide se incrementare la magnitudine.

    remainder è la parte frazionaria della magnitudine, in [0, 1), calcolata
    in aritmetica decimale esatta.
    """
    if mode is RoundingMode.FLOOR:
        return negative and remainder > _ZERO
    if mode is RoundingMode.CEIL:
        return not negative and remainder > _ZERO
    if mode is RoundingMode.HALF_UP:
        return remainder >= _HALF
    if mode is RoundingMode.HALF_DOWN:
        return remainder > _HALF
    raise ValueError(f"Unknown rounding mode: {mode}")


@dataclass(frozen=True)
class PayablePolicy:
    """
    Tabella (mode, precision) per valuta, usata da get_payable().

    precision è il numero di minor unit per unità: 100 per due decimali,
    1 per valute intere. Le chiavi di overrides sono confrontate in minuscolo.

    overrides è una vista in sola lettura su una copia privata: la policy
    di default è condivisa da tutti i get_payable() e non deve cambiare.

    USAGE:
        policy = DEFAULT_PAYABLE_POLICY.with_currency("JPY", RoundingMode.HALF_UP, 1)
        price.get_payable(policy)
    """
    default_mode: RoundingMode = RoundingMode.HALF_UP
    default_precision: int = 100
    overrides: Mapping[str, tuple[RoundingMode, int]] = field(
        default_factory=lambda: {
            "miles": (RoundingMode.FLOOR, 1),
            "points": (RoundingMode.FLOOR, 1),
        },
        hash=False,
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "overrides",
            MappingProxyType({
                currency.lower(): (RoundingMode(mode), precision)
                for currency, (mode, precision) in self.overrides.items()
            }),
        )

    def lookup(self, currency: str) -> tuple[RoundingMode, int]:
        return self.overrides.get(
            currency.lower(), (self.default_mode, self.default_precision)
        )

    def with_currency(
        self, currency: str, mode: RoundingMode, precision: int
    ) -> PayablePolicy:
        """Restituisce una nuova policy con un override aggiuntivo."""
        if precision <= 0:
            raise ValueError(f"precision deve essere > 0, ricevuto: {precision}")
        overrides = dict(self.overrides)
        overrides[currency.lower()] = (RoundingMode(mode), precision)
        return PayablePolicy(self.default_mode, self.default_precision, overrides)


DEFAULT_PAYABLE_POLICY = PayablePolicy()


# ==============================================================================
# PRICE CLASS
# ==============================================================================

@dataclass(frozen=True, slots=True)
class Price:
    """
    Domain Primitive per importi monetari a precisione arbitraria.

    INVARIANTI:
    1. _amount è sempre un Decimal finito
    2. _currency è un codice opaco, case-sensitive per l'uguaglianza
    3. add/sub tra valute diverse (entrambe non-zero) sollevano CurrencyMismatchError
    4. split_in_payables(n) garantisce sum(parts) == get_payable()

    USAGE:
        total = Price.from_float(12.456, "EUR")
        parts = total.split_in_payables(6)
        # sum(parts) == total.get_payable() == 12.46

    SERIALIZATION:
        Formato canonico: {"amount": "12.456", "currency": "EUR"}
        L'importo è sempre una stringa decimale, MAI un float.
    """
    _amount: Decimal
    _currency: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "_amount", _to_decimal(self._amount))
        if not isinstance(self._currency, str):
            raise TypeError(
                f"currency deve essere str, non {type(self._currency).__name__}"
            )

    # -------------------------------------------------------------------------
    # Costruttori
    # -------------------------------------------------------------------------

    @classmethod
    def from_float(cls, value: float, currency: str) -> Price:
        """
        Costruttore da float.

        Il float è convertito tramite la sua rappresentazione più corta,
        quindi from_float(12.45, "EUR") == from_int(1245, 100, "EUR").
        """
        return cls(_to_decimal(float(value)), currency)

    @classmethod
    def from_decimal(cls, value: DecimalLike, currency: str) -> Price:
        """Costruttore da Decimal, int o stringa decimale. Nessuna perdita."""
        return cls(_to_decimal(value), currency)

    @classmethod
    def from_int(cls, amount: int, precision: int, currency: str) -> Price:
        """
        Costruttore da minor unit: from_int(245, 100, "EUR") == 2.45 EUR.

        precision == 0 restituisce zero (caso degenere, non un errore).
        """
        if precision == 0:
            return cls.zero(currency)
        return cls(_DIVISION.divide(Decimal(amount), Decimal(precision)), currency)

    @classmethod
    def zero(cls, currency: str = "") -> Price:
        """Zero per una data valuta. Elemento neutro per add/sub."""
        return cls(_ZERO, currency)

    # -------------------------------------------------------------------------
    # Operazioni aritmetiche
    # -------------------------------------------------------------------------

    def add(self, other: Price) -> Price:
        currency = currency_guard(self, other)
        return Price(_EXACT.add(self._amount, other._amount), currency)

    def sub(self, other: Price) -> Price:
        currency = currency_guard(self, other)
        return Price(_EXACT.subtract(self._amount, other._amount), currency)

    def force_add(self, other: Price) -> Price:
        """
        Come add(), ma con valute incompatibili restituisce self invariato.

        ATTENZIONE: perde l'importo di other. Solo per contesti di display
        dove un valore approssimato è accettabile.
        """
        try:
            return self.add(other)
        except CurrencyMismatchError:
            logger.debug(
                "force_add ignored %s: currency %r incompatible with %r",
                other, other._currency, self._currency,
            )
            return self

    def multiply(self, qty: int) -> Price:
        """Moltiplicazione per quantità intera. Esatta."""
        if isinstance(qty, bool) or not isinstance(qty, int):
            raise TypeError(
                f"Price può essere moltiplicato solo per int (quantità), "
                f"non {type(qty).__name__}"
            )
        return Price(_EXACT.multiply(self._amount, Decimal(qty)), self._currency)

    def divided(self, qty: int) -> Price:
        """
        Divisione per quantità intera.

        qty == 0 restituisce zero nella stessa valuta invece di fallire.
        """
        if isinstance(qty, bool) or not isinstance(qty, int):
            raise TypeError(
                f"Price può essere diviso solo per int, non {type(qty).__name__}"
            )
        if qty == 0:
            return Price.zero(self._currency)
        return Price(_DIVISION.divide(self._amount, Decimal(qty)), self._currency)

    def inverse(self) -> Price:
        """L'importo moltiplicato per -1."""
        return Price(_EXACT.minus(self._amount), self._currency)

    def __add__(self, other: Price) -> Price:
        if not isinstance(other, Price):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: Price) -> Price:
        if not isinstance(other, Price):
            return NotImplemented
        return self.sub(other)

    def __neg__(self) -> Price:
        return self.inverse()

    def __mul__(self, qty: int) -> Price:
        return self.multiply(qty)

    def __rmul__(self, qty: int) -> Price:
        return self.multiply(qty)

    # -------------------------------------------------------------------------
    # Operazioni fiscali
    # -------------------------------------------------------------------------

    def discounted(self, percent: DecimalLike) -> Price:
        """Prezzo ridotto della percentuale data: amount * (100 - p) / 100."""
        factor = _EXACT.subtract(_HUNDRED, _to_decimal(percent))
        product = _EXACT.multiply(self._amount, factor)
        return Price(_DIVISION.divide(product, _HUNDRED), self._currency)

    def taxed(self, percent: DecimalLike) -> Price:
        """Prezzo netto + tassa (self è considerato netto)."""
        tax = self.tax_from_net(percent)
        return Price(_EXACT.add(self._amount, tax._amount), self._currency)

    def tax_from_net(self, percent: DecimalLike) -> Price:
        """
        Importo della tassa, assumendo self come netto (100%).

        Esempio: 100 EUR al 19% -> 19 EUR
        """
        product = _EXACT.multiply(_to_decimal(percent), self._amount)
        return Price(_DIVISION.divide(product, _HUNDRED), self._currency)

    def tax_from_gross(self, percent: DecimalLike) -> Price:
        """
        Importo della tassa, assumendo self come lordo (100 + percent).

        Esempio: 119 EUR al 19% -> 19 EUR
        """
        rate = _to_decimal(percent)
        product = _EXACT.multiply(rate, self._amount)
        return Price(
            _DIVISION.divide(product, _EXACT.add(rate, _HUNDRED)),
            self._currency,
        )

    # -------------------------------------------------------------------------
    # Comparazione
    # -------------------------------------------------------------------------

    def equal(self, other: Price) -> bool:
        """Uguaglianza esatta di importo e valuta."""
        return self._currency == other._currency and self._amount == other._amount

    def likely_equal(self, other: Price) -> bool:
        """
        Uguaglianza con tolleranza (differenza < 1e-9).

        Valute diverse non sono mai likely_equal, nemmeno se entrambe zero.
        """
        if self._currency != other._currency:
            return False
        diff = _EXACT.abs(_EXACT.subtract(self._amount, other._amount))
        return diff < LIKELY_EQUAL_TOLERANCE

    def is_less_than(self, other: Price) -> bool:
        """Con valute diverse restituisce False (contratto debole)."""
        if self._currency != other._currency:
            return False
        return self._amount < other._amount

    def is_greater_than(self, other: Price) -> bool:
        """Con valute diverse restituisce False (contratto debole)."""
        if self._currency != other._currency:
            return False
        return self._amount > other._amount

    def is_less_than_value(self, value: DecimalLike) -> bool:
        """Confronto con un valore nudo, senza controllo di valuta."""
        return self._amount < _to_decimal(value)

    def is_greater_than_value(self, value: DecimalLike) -> bool:
        """Confronto con un valore nudo, senza controllo di valuta."""
        return self._amount > _to_decimal(value)

    def is_negative(self) -> bool:
        return self._amount < _ZERO

    def is_positive(self) -> bool:
        return self._amount > _ZERO

    def is_zero(self) -> bool:
        return self.likely_equal(Price.zero(self._currency))

    def is_payable(self) -> bool:
        """True se l'importo è già arrotondato alla minor unit pagabile."""
        return self.get_payable().equal(self)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Price):
            return self.equal(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._amount, self._currency))

    # -------------------------------------------------------------------------
    # Payable (rounding engine)
    # -------------------------------------------------------------------------

    def get_payable(self, policy: PayablePolicy = DEFAULT_PAYABLE_POLICY) -> Price:
        """
        Arrotonda alla minor unit pagabile della valuta.

        Esempio (EUR, HALF_UP a 100): 12.34567 -> 12.35, -0.119 -> -0.12
        """
        mode, precision = policy.lookup(self._currency)
        return self.get_payable_by_rounding_mode(mode, precision)

    def get_payable_by_rounding_mode(
        self, mode: RoundingMode | str, precision: int
    ) -> Price:
        """
        Arrotonda con mode e precision espliciti.

        Esempi a precision 100:
            1.115 -> 1.12 (HALF_UP) / 1.11 (FLOOR)
           -1.115 -> -1.12 (HALF_UP) / -1.12 (FLOOR)

        Il calcolo avviene sulla magnitudine; il segno viene riapplicato.
        Se la magnitudine scalata supera MAX_ROUNDABLE l'importo è
        restituito non arrotondato.
        """
        mode = RoundingMode(mode)
        if isinstance(precision, bool) or not isinstance(precision, int) or precision <= 0:
            raise ValueError(f"precision deve essere un int > 0, ricevuto: {precision!r}")

        negative = self.is_negative()
        scaled = _EXACT.abs(_EXACT.multiply(self._amount, Decimal(precision)))
        if scaled >= MAX_ROUNDABLE:
            logger.debug(
                "amount %s %s exceeds roundable range at precision %d, left unrounded",
                self._amount, self._currency, precision,
            )
            return self

        integer_part = scaled.to_integral_value(rounding=ROUND_DOWN)
        remainder = _EXACT.subtract(scaled, integer_part)

        minor_units = int(integer_part)
        if _should_increment(mode, remainder, negative):
            minor_units += 1
        if negative:
            minor_units = -minor_units

        return Price.from_int(minor_units, precision, self._currency)

    # -------------------------------------------------------------------------
    # Split (core del dominio)
    # -------------------------------------------------------------------------

    def split_in_payables(
        self, count: int, policy: PayablePolicy = DEFAULT_PAYABLE_POLICY
    ) -> list[Price]:
        """
        Divide il payable in count parti pagabili con somma ESATTA.

        Algoritmo: Largest Remainder Method sulle minor unit.
        Esempio: 12.456 EUR (payable 12.46) in 6 parti ->
            2.08, 2.08, 2.08, 2.08, 2.07, 2.07

        Il resto va alle prime parti, in ordine. Per importi negativi si
        divide la magnitudine e si riapplica il segno a ogni parte.

        Raises:
            InvalidSplitCountError: se count <= 0
        """
        if count <= 0:
            raise InvalidSplitCountError(f"count deve essere > 0, ricevuto: {count}")

        _, precision = policy.lookup(self._currency)
        payable = self.get_payable(policy)
        negative = payable.is_negative()
        magnitude = _EXACT.abs(_EXACT.multiply(payable._amount, Decimal(precision)))
        total_minor = int(magnitude.to_integral_value(rounding=ROUND_HALF_EVEN))

        base, remainder = divmod(total_minor, count)
        sign = -1 if negative else 1

        return [
            Price.from_int(
                sign * (base + (1 if i < remainder else 0)),
                precision,
                self._currency,
            )
            for i in range(count)
        ]

    # -------------------------------------------------------------------------
    # Proprietà e output
    # -------------------------------------------------------------------------

    @property
    def amount(self) -> Decimal:
        """Importo esatto."""
        return self._amount

    @property
    def currency(self) -> str:
        return self._currency

    def float_amount(self) -> float:
        """
        Importo come float.

        ATTENZIONE: SOLO per display, non usare per calcoli.
        """
        return float(self._amount)

    def __repr__(self) -> str:
        return f"Price({format(self._amount, 'f')!r}, {self._currency!r})"

    def __str__(self) -> str:
        return f"{format(self._amount, 'f')} {self._currency}".rstrip()

    # -------------------------------------------------------------------------
    # Serializzazione
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        """
        Serializza per persistenza/API.

        Formato: {"amount": str, "currency": str}, amount senza notazione
        esponenziale.
        """
        return {
            "amount": format(self._amount, "f"),
            "currency": self._currency,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> Price:
        """
        Deserializza da dict nel formato canonico.

        Raises:
            DecodeError: se amount manca, non è una stringa o non è un decimale finito
        """
        if not isinstance(data, Mapping):
            raise DecodeError(f"atteso un oggetto, ricevuto {type(data).__name__}")
        raw_amount = data.get("amount")
        if not isinstance(raw_amount, str) or not _WIRE_AMOUNT.fullmatch(raw_amount):
            raise DecodeError(f"campo amount mancante o non valido: {raw_amount!r}")
        currency = data.get("currency", "")
        if currency is None:
            currency = ""
        if not isinstance(currency, str):
            raise DecodeError(f"campo currency non valido: {currency!r}")
        try:
            amount = _to_decimal(raw_amount)
        except ValueError as e:
            raise DecodeError(str(e)) from e
        return cls(amount, currency)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str | bytes) -> Price:
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"JSON non valido: {e}") from e
        return cls.from_dict(data)


# ==============================================================================
# CURRENCY GUARD
# ==============================================================================

def currency_guard(a: Price, b: Price) -> str:
    """
    Restituisce la valuta del risultato di un'operazione tra a e b.

    - valute uguali -> quella valuta
    - a zero -> valuta di b
    - b zero -> valuta di a
    - altrimenti -> CurrencyMismatchError

    Lo zero neutro permette di usare Price.zero() come accumulatore.
    """
    if a.currency == b.currency:
        return b.currency
    if a.is_zero():
        return b.currency
    if b.is_zero():
        return a.currency
    raise CurrencyMismatchError(
        f"Valute diverse: {a.currency!r} e {b.currency!r}. "
        f"Converti esplicitamente prima di operare."
    )


# ==============================================================================
# AGGREGATION
# ==============================================================================

def sum_all(*prices: Price) -> Price:
    """
    Somma tutti i prezzi dati con add().

    Raises:
        EmptyAggregateError: se non viene passato nessun prezzo
        CurrencyMismatchError: alla prima coppia incompatibile
    """
    if not prices:
        raise EmptyAggregateError("no price given")
    result = prices[0]
    for price in prices[1:]:
        result = result.add(price)
    return result
