"""
Ledger State Module

In-memory state a batch runs against: users (with their accounts, cards and
transaction logs), the currency converter and the identifier generator.
All lookups are linear scans in insertion order; the first match wins.
"""

from datetime import date
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from .currency import CurrencyConverter, ExchangeRate
from .entities import User, Account, Card
from .identifiers import IdentifierGenerator


class Ledger:
    """
    Mutable banking state shared by every handler of a batch
    """

    def __init__(
        self,
        users: Optional[Iterable[User]] = None,
        rates: Optional[Iterable[ExchangeRate]] = None,
        identifiers: Optional[IdentifierGenerator] = None,
        today: Optional[Callable[[], date]] = None
    ):
        self.users: List[User] = list(users or [])
        self.converter = CurrencyConverter(rates)
        self.identifiers = identifiers or IdentifierGenerator()
        self._today = today or date.today

    def today(self) -> date:
        """Current date used for age checks"""
        return self._today()

    def add_user(self, user: User) -> None:
        """Register a user"""
        self.users.append(user)

    def find_user(self, email: str) -> Optional[User]:
        """Get user by email"""
        for user in self.users:
            if user.email == email:
                return user
        return None

    def iter_accounts(self) -> Iterator[Tuple[User, Account]]:
        """Yield (owner, account) pairs in display order"""
        for user in self.users:
            for account in user.accounts:
                yield user, account

    def find_account(self, identifier: str) -> Optional[Account]:
        """Get account by IBAN or alias"""
        for _, account in self.iter_accounts():
            if account.matches(identifier):
                return account
        return None

    def find_owner(self, account: Account) -> Optional[User]:
        """Get the user owning an account"""
        for user, candidate in self.iter_accounts():
            if candidate is account:
                return user
        return None

    def find_card(self, card_number: str) -> Optional[Tuple[User, Account, Card]]:
        """Get (owner, account, card) for a card number"""
        for user, account in self.iter_accounts():
            card = account.find_card(card_number)
            if card is not None:
                return user, account, card
        return None

    def iban_exists(self, iban: str) -> bool:
        """Check if any account already uses iban"""
        return any(account.iban == iban for _, account in self.iter_accounts())

    def card_number_exists(self, card_number: str) -> bool:
        """Check if any account already holds card_number"""
        return self.find_card(card_number) is not None

    def reset_identifiers(self) -> None:
        """Restart IBAN and card-number generation from the seeds"""
        self.identifiers.reset()
