"""
Command Model Module

Command kinds understood by the engine, the parameter record every handler
receives, and the ordered result sink handlers write to.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum


class CommandKind(Enum):
    """Command kinds, by their name in the input document"""
    PRINT_USERS = "printUsers"
    ADD_ACCOUNT = "addAccount"
    CREATE_CARD = "createCard"
    CREATE_ONE_TIME_CARD = "createOneTimeCard"
    ADD_FUNDS = "addFunds"
    DELETE_ACCOUNT = "deleteAccount"
    DELETE_CARD = "deleteCard"
    PAY_ONLINE = "payOnline"
    PRINT_TRANSACTIONS = "printTransactions"
    SET_ALIAS = "setAlias"
    SEND_MONEY = "sendMoney"
    CHECK_CARD_STATUS = "checkCardStatus"
    SET_MINIMUM_BALANCE = "setMinimumBalance"
    CHANGE_INTEREST_RATE = "changeInterestRate"
    ADD_INTEREST = "addInterest"
    SPLIT_PAYMENT = "splitPayment"
    REPORT = "report"
    SPENDINGS_REPORT = "spendingsReport"
    WITHDRAW_SAVINGS = "withdrawSavings"
    UPGRADE_PLAN = "upgradePlan"
    CASH_WITHDRAWAL = "cashWithdrawal"

    @classmethod
    def from_name(cls, name: str) -> 'CommandKind':
        """
        Resolve a command name

        Raises:
            ValueError: If the name is not a known command
        """
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown command: {name}") from None


@dataclass(frozen=True)
class Command:
    """
    Parameters of a single command. Only the fields its kind uses are set.
    """
    name: str
    timestamp: int
    email: Optional[str] = None
    account: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    account_type: Optional[str] = None
    interest_rate: Optional[Decimal] = None
    card_number: Optional[str] = None
    description: Optional[str] = None
    commerciant: Optional[str] = None
    receiver: Optional[str] = None
    alias: Optional[str] = None
    accounts: Tuple[str, ...] = ()
    start_timestamp: Optional[int] = None
    end_timestamp: Optional[int] = None
    new_plan_type: Optional[str] = None
    location: Optional[str] = None

    def __post_init__(self):
        if self.amount is not None and not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.interest_rate is not None and not isinstance(self.interest_rate, Decimal):
            object.__setattr__(self, 'interest_rate', Decimal(str(self.interest_rate)))
        if self.currency is not None:
            object.__setattr__(self, 'currency', self.currency.strip().upper())
        if not isinstance(self.accounts, tuple):
            object.__setattr__(self, 'accounts', tuple(self.accounts))

    @property
    def kind(self) -> CommandKind:
        """Resolved command kind (raises ValueError for unknown names)"""
        return CommandKind.from_name(self.name)


class CommandOutput:
    """
    Ordered sequence of command results. Entries are only ever appended.
    """

    def __init__(self):
        self._entries: List[Dict[str, Any]] = []

    def emit(self, command: Command, payload: Any) -> Dict[str, Any]:
        """Append a result for command"""
        entry = {
            "command": command.name,
            "output": payload,
            "timestamp": command.timestamp
        }
        self._entries.append(entry)
        return entry

    def emit_description(self, command: Command, description: str) -> Dict[str, Any]:
        """Append a {description, timestamp} result"""
        return self.emit(command, {"description": description, "timestamp": command.timestamp})

    def emit_error(self, command: Command, message: str) -> Dict[str, Any]:
        """Append an {error, timestamp} result"""
        return self.emit(command, {"error": message, "timestamp": command.timestamp})

    def emit_dispatch_error(self, name: str, message: str) -> Dict[str, Any]:
        """Append a dispatch-level error for a command that never reached a handler"""
        entry = {
            "command": name,
            "status": "error",
            "message": message
        }
        self._entries.append(entry)
        return entry

    @property
    def entries(self) -> List[Dict[str, Any]]:
        """Copy of the results in emission order"""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
