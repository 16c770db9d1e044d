"""
Identifier Generation Module

Deterministic IBAN and card-number generation. Each ledger owns one
generator; resetting it restarts both sequences from their seeds, so a batch
always produces the same identifiers.
"""

import random
from typing import Optional

from .config import get_config


class IdentifierGenerator:
    """Seeded generator for IBANs and card numbers"""

    def __init__(
        self,
        iban_seed: Optional[int] = None,
        card_seed: Optional[int] = None,
        country_code: Optional[str] = None,
        bank_code: Optional[str] = None,
        iban_digits: Optional[int] = None,
        card_digits: Optional[int] = None
    ):
        settings = get_config()
        self.iban_seed = settings.iban_seed if iban_seed is None else iban_seed
        self.card_seed = settings.card_seed if card_seed is None else card_seed
        self.country_code = country_code or settings.iban_country_code
        self.bank_code = bank_code or settings.iban_bank_code
        self.iban_digits = iban_digits or settings.iban_account_digits
        self.card_digits = card_digits or settings.card_number_digits
        self.reset()

    def reset(self) -> None:
        """Restart both sequences from their seeds"""
        self._iban_random = random.Random(self.iban_seed)
        self._card_random = random.Random(self.card_seed)

    def next_iban(self) -> str:
        """Generate the next IBAN: country code, 2 check digits, bank code, account digits"""
        check_digits = self._digits(self._iban_random, 2)
        account_digits = self._digits(self._iban_random, self.iban_digits)
        return f"{self.country_code}{check_digits}{self.bank_code}{account_digits}"

    def next_card_number(self) -> str:
        """Generate the next card number"""
        return self._digits(self._card_random, self.card_digits)

    @staticmethod
    def _digits(rng: random.Random, count: int) -> str:
        return "".join(str(rng.randrange(10)) for _ in range(count))
