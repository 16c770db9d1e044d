"""
Ledger Entities Module

Users, their accounts and the cards attached to those accounts. Accounts are
either classic or savings (with an interest rate); cards are either standard
or one-time-use. Both variants are tagged with an enum rather than subclassed.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field
from typing import List, Optional
from enum import Enum

from .currency import normalize_currency
from .transactions import Transaction


class AccountType(Enum):
    """Account variants"""
    CLASSIC = "classic"
    SAVINGS = "savings"


class Plan(Enum):
    """Fee plans, from most to least expensive surcharge"""
    STANDARD = "standard"
    STUDENT = "student"
    SILVER = "silver"
    GOLD = "gold"


class CardType(Enum):
    """Card variants"""
    STANDARD = "standard"
    ONE_TIME = "one-time-use"


class CardStatus(Enum):
    """Card lifecycle states"""
    ACTIVE = "active"      # Usable for payments
    FROZEN = "frozen"      # Blocked after the account reached its minimum funds
    INACTIVE = "inactive"  # One-time card already used


@dataclass(eq=False)
class Card:
    """Payment card bound to a single account"""
    card_number: str
    card_type: CardType = CardType.STANDARD
    status: CardStatus = CardStatus.ACTIVE
    used: bool = False

    @property
    def is_one_time(self) -> bool:
        """Check if this is a one-time-use card"""
        return self.card_type == CardType.ONE_TIME

    @property
    def is_active(self) -> bool:
        """Check if the card can be charged"""
        return self.status == CardStatus.ACTIVE

    def freeze(self) -> None:
        """Freeze the card"""
        self.status = CardStatus.FROZEN

    def mark_used(self) -> None:
        """Consume a one-time card; it becomes inactive for good"""
        if not self.is_one_time:
            raise ValueError(f"Card {self.card_number} is not a one-time card")
        self.used = True
        self.status = CardStatus.INACTIVE


@dataclass(eq=False)
class Account:
    """
    Bank account holding a balance in a single, fixed currency.

    The balance is never clamped; handlers decide whether a debit is allowed.
    """
    iban: str
    currency: str
    account_type: AccountType = AccountType.CLASSIC
    interest_rate: Optional[Decimal] = None  # Savings accounts only
    balance: Decimal = Decimal('0')
    minimum_balance: Decimal = Decimal('0')
    plan: Plan = Plan.STANDARD
    alias: Optional[str] = None
    cards: List[Card] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)

    def __post_init__(self):
        self.currency = normalize_currency(self.currency)

        if self.account_type == AccountType.SAVINGS:
            if self.interest_rate is None:
                self.interest_rate = Decimal('0')
        elif self.interest_rate is not None:
            raise ValueError("Only savings accounts carry an interest rate")

    @property
    def is_savings(self) -> bool:
        """Check if this is a savings account"""
        return self.account_type == AccountType.SAVINGS

    def matches(self, identifier: str) -> bool:
        """Check if identifier is this account's IBAN or alias"""
        return self.iban == identifier or (self.alias is not None and self.alias == identifier)

    def can_afford(self, amount: Decimal) -> bool:
        """Check if the balance covers amount"""
        return self.balance >= amount

    def deposit(self, amount: Decimal) -> None:
        """Credit the account"""
        self.balance += amount

    def withdraw(self, amount: Decimal) -> None:
        """Debit the account (callers check affordability first)"""
        self.balance -= amount

    def find_card(self, card_number: str) -> Optional[Card]:
        """Get a card attached to this account"""
        for card in self.cards:
            if card.card_number == card_number:
                return card
        return None

    def add_card(self, card: Card) -> None:
        """Attach a card"""
        self.cards.append(card)

    def remove_card(self, card: Card) -> None:
        """Detach a card"""
        self.cards.remove(card)

    def record(self, transaction: Transaction) -> Transaction:
        """Append an entry to the transaction log"""
        self.transactions.append(transaction)
        return transaction


@dataclass(eq=False)
class User:
    """Bank customer owning an ordered list of accounts"""
    email: str
    first_name: str
    last_name: str
    occupation: Optional[str] = None
    birth_date: Optional[date] = None
    accounts: List[Account] = field(default_factory=list)

    @property
    def is_student(self) -> bool:
        """Check if the user's occupation is student"""
        return (self.occupation or "").lower() == "student"

    @property
    def default_plan(self) -> Plan:
        """Plan assigned to accounts this user opens"""
        return Plan.STUDENT if self.is_student else Plan.STANDARD

    def age_on(self, today: date) -> Optional[int]:
        """Age in full years on the given date (None without a birth date)"""
        if self.birth_date is None:
            return None
        years = today.year - self.birth_date.year
        if (today.month, today.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return years

    def find_account(self, identifier: str) -> Optional[Account]:
        """Get one of this user's accounts by IBAN or alias"""
        for account in self.accounts:
            if account.matches(identifier):
                return account
        return None

    def add_account(self, account: Account) -> None:
        """Attach an account"""
        self.accounts.append(account)

    def remove_account(self, account: Account) -> None:
        """Detach an account"""
        self.accounts.remove(account)

    def all_transactions(self) -> List[Transaction]:
        """Every entry of every account, ordered by timestamp (stable on ties)"""
        entries = [t for account in self.accounts for t in account.transactions]
        return sorted(entries, key=lambda t: t.timestamp)
