"""
Multi-Currency Support Module

Resolves conversion rates between any two currency codes from a sparse table
of direct exchange rates. Every rate implies its inverse, and indirect pairs
are converted along the path whose rate product is largest.
"""

from decimal import Decimal, getcontext
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
import heapq
import itertools

# Set global decimal context for financial precision
getcontext().prec = 28  # High precision for financial calculations


def normalize_currency(code: str) -> str:
    """Normalize a currency code (strip + upper-case)"""
    if not code or not isinstance(code, str):
        raise ValueError("Currency code must be a non-empty string")
    return code.strip().upper()


@dataclass(frozen=True)
class ExchangeRate:
    """Direct exchange rate: 1 unit of from_currency buys `rate` units of to_currency"""
    from_currency: str
    to_currency: str
    rate: Decimal

    def __post_init__(self):
        object.__setattr__(self, 'from_currency', normalize_currency(self.from_currency))
        object.__setattr__(self, 'to_currency', normalize_currency(self.to_currency))

        if not isinstance(self.rate, Decimal):
            object.__setattr__(self, 'rate', Decimal(str(self.rate)))

        if self.rate <= Decimal('0'):
            raise ValueError(
                f"Exchange rate {self.from_currency} -> {self.to_currency} must be positive"
            )

    def inverse(self) -> 'ExchangeRate':
        """Rate for the reverse pair"""
        return ExchangeRate(
            from_currency=self.to_currency,
            to_currency=self.from_currency,
            rate=Decimal('1') / self.rate
        )


class CurrencyConverter:
    """
    Converts amounts between currencies through a graph of exchange rates.

    Each direct rate A->B adds the edges A->B (rate) and B->A (1/rate).
    A conversion follows the path maximizing the product of its edge rates,
    found with a best-first search over the running product. Results are
    never rounded here; callers format at render time.

    A node is settled when first popped, so the product is only guaranteed
    maximal when no edge after it exceeds 1. Inconsistent rate tables (for
    example A->B 1 next to A->C 0.5, C->B 10) return the first settled path.
    """

    def __init__(self, rates: Optional[Iterable[ExchangeRate]] = None):
        self._graph: Dict[str, Dict[str, Decimal]] = {}
        self._rates: List[ExchangeRate] = []
        self._cache: Dict[Tuple[str, str], Optional[Decimal]] = {}

        for rate in rates or []:
            self.set_rate(rate)

    def set_rate(self, rate: ExchangeRate) -> None:
        """Add (or replace) a direct rate and its implied inverse"""
        self._rates.append(rate)
        self._graph.setdefault(rate.from_currency, {})[rate.to_currency] = rate.rate
        self._graph.setdefault(rate.to_currency, {})[rate.from_currency] = Decimal('1') / rate.rate
        self._cache.clear()

    def get_rate(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        """
        Get the composite conversion rate between two currencies.

        Returns:
            The rate product along the best path, Decimal('1') for identical
            currencies, or None when to_currency is unreachable.
        """
        if from_currency == to_currency:
            return Decimal('1')

        key = (from_currency, to_currency)
        if key not in self._cache:
            self._cache[key] = self._best_path_rate(from_currency, to_currency)
        return self._cache[key]

    def convert(self, amount: Decimal, from_currency: str, to_currency: str) -> Optional[Decimal]:
        """
        Convert an amount from one currency to another

        Args:
            amount: Amount expressed in from_currency
            from_currency: Source currency code
            to_currency: Target currency code

        Returns:
            Converted amount, or None if no conversion path exists
        """
        if from_currency == to_currency:
            return amount

        rate = self.get_rate(from_currency, to_currency)
        if rate is None:
            return None

        return amount * rate

    def can_convert(self, from_currency: str, to_currency: str) -> bool:
        """Check whether a conversion path exists"""
        return self.get_rate(from_currency, to_currency) is not None

    def get_all_rates(self) -> List[ExchangeRate]:
        """Get the direct rates in insertion order"""
        return list(self._rates)

    def _best_path_rate(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        # Max-heap on the running product; the counter keeps pops in push order on ties
        counter = itertools.count()
        best: Dict[str, Decimal] = {from_currency: Decimal('1')}
        heap = [(-Decimal('1'), next(counter), from_currency)]
        visited = set()

        while heap:
            negative_product, _, currency = heapq.heappop(heap)
            if currency in visited:
                continue
            visited.add(currency)

            product = -negative_product
            if currency == to_currency:
                return product

            for neighbor, edge_rate in self._graph.get(currency, {}).items():
                if neighbor in visited:
                    continue
                candidate = product * edge_rate
                if neighbor not in best or candidate > best[neighbor]:
                    best[neighbor] = candidate
                    heapq.heappush(heap, (-candidate, next(counter), neighbor))

        return None


def convert(amount: Decimal, from_currency: str, to_currency: str,
            rates: Iterable[ExchangeRate]) -> Optional[Decimal]:
    """One-shot conversion over a rate table; None when unreachable"""
    return CurrencyConverter(rates).convert(amount, from_currency, to_currency)
