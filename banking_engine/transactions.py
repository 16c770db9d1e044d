"""
Transaction Log Module

Immutable, append-only transaction records. Each record is tagged with the
command kind that produced it and carries only the fields that kind uses;
everything else stays None so renderers can omit it.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Optional, Tuple
from enum import Enum


class TransactionKind(Enum):
    """Command kinds that leave entries in an account's transaction log"""
    ADD_ACCOUNT = "addAccount"
    CREATE_CARD = "createCard"
    DELETE_CARD = "deleteCard"
    DELETE_ACCOUNT = "deleteAccount"
    PAY_ONLINE = "payOnline"
    SEND_MONEY = "sendMoney"
    SPLIT_PAYMENT = "splitPayment"
    CHECK_CARD_STATUS = "checkCardStatus"
    CHANGE_INTEREST_RATE = "changeInterestRate"
    ADD_INTEREST = "addInterest"
    WITHDRAW_SAVINGS = "withdrawSavings"
    UPGRADE_PLAN = "upgradePlan"
    CASH_WITHDRAWAL = "cashWithdrawal"


class TransferType(Enum):
    """Direction of a sendMoney entry from the logging account's side"""
    SENT = "sent"
    RECEIVED = "received"


# Kinds describing card lifecycle rather than spending
CARD_LIFECYCLE_KINDS = frozenset({TransactionKind.CREATE_CARD, TransactionKind.DELETE_CARD})


@dataclass(frozen=True)
class Transaction:
    """
    A single transaction log entry.

    Rejections (insufficient funds, frozen card, underage withdrawal, ...)
    are recorded as entries too; they are part of the account's history.
    """
    kind: TransactionKind
    timestamp: int
    description: str

    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    sender_iban: Optional[str] = None
    receiver_iban: Optional[str] = None
    transfer_type: Optional[TransferType] = None
    card: Optional[str] = None
    card_holder: Optional[str] = None
    account: Optional[str] = None
    commerciant: Optional[str] = None
    involved_accounts: Optional[Tuple[str, ...]] = None
    error_account: Optional[str] = None
    new_plan_type: Optional[str] = None

    def __post_init__(self):
        if self.amount is not None and not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        if self.involved_accounts is not None and not isinstance(self.involved_accounts, tuple):
            object.__setattr__(self, 'involved_accounts', tuple(self.involved_accounts))

    @property
    def is_card_lifecycle(self) -> bool:
        """Check if this entry records a card being created or destroyed"""
        return self.kind in CARD_LIFECYCLE_KINDS

    @property
    def has_commerciant(self) -> bool:
        """Check if this entry names a merchant"""
        return bool(self.commerciant)

    def in_window(self, start_timestamp: int, end_timestamp: int) -> bool:
        """Check if the entry falls within [start_timestamp, end_timestamp]"""
        return start_timestamp <= self.timestamp <= end_timestamp
