"""
Transaction Rendering Module

Turns ledger entities and transaction entries into report payloads. Two
independent tables map each transaction kind to its render function: one for
a user's full history and one for account-scoped windowed reports. Kinds
without an entry fall back to {description, timestamp}. Fields a kind does
not use are omitted, never emitted as null.
"""

from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .entities import User, Account, Card
from .transactions import Transaction, TransactionKind

Renderer = Callable[[Transaction], Dict[str, Any]]


def to_number(value: Optional[Decimal]) -> Optional[float]:
    """Decimal -> JSON number (None passes through)"""
    if value is None:
        return None
    return float(value)


def format_amount(value: Decimal) -> str:
    """Plain-text amount, as embedded in descriptions and "<amount> <currency>" fields"""
    return str(float(value))


def _compact(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in fields.items() if value is not None}


def _amount_with_currency(transaction: Transaction) -> Optional[str]:
    if transaction.amount is None or transaction.currency is None:
        return None
    return f"{format_amount(transaction.amount)} {transaction.currency}"


def _split_error(transaction: Transaction) -> Optional[str]:
    if transaction.error_account is None:
        return None
    return f"Account {transaction.error_account} has insufficient funds for a split payment."


def _transfer_type(transaction: Transaction) -> Optional[str]:
    return transaction.transfer_type.value if transaction.transfer_type else None


def _involved_accounts(transaction: Transaction) -> Optional[List[str]]:
    if transaction.involved_accounts is None:
        return None
    return list(transaction.involved_accounts)


# Renderers shared by both tables

def render_default(transaction: Transaction) -> Dict[str, Any]:
    return {
        "description": transaction.description,
        "timestamp": transaction.timestamp
    }


def render_send_money(transaction: Transaction) -> Dict[str, Any]:
    return _compact({
        "amount": _amount_with_currency(transaction),
        "description": transaction.description,
        "senderIBAN": transaction.sender_iban,
        "receiverIBAN": transaction.receiver_iban,
        "timestamp": transaction.timestamp,
        "transferType": _transfer_type(transaction)
    })


def render_pay_online(transaction: Transaction) -> Dict[str, Any]:
    return _compact({
        "amount": to_number(transaction.amount),
        "commerciant": transaction.commerciant,
        "description": transaction.description,
        "timestamp": transaction.timestamp
    })


def render_card_event(transaction: Transaction) -> Dict[str, Any]:
    return _compact({
        "account": transaction.account,
        "card": transaction.card,
        "cardHolder": transaction.card_holder,
        "description": transaction.description,
        "timestamp": transaction.timestamp
    })


def render_split_payment(transaction: Transaction) -> Dict[str, Any]:
    return _compact({
        "amount": to_number(transaction.amount),
        "currency": transaction.currency,
        "description": transaction.description,
        "error": _split_error(transaction),
        "involvedAccounts": _involved_accounts(transaction),
        "timestamp": transaction.timestamp
    })


# History-only renderers

def render_upgrade_plan(transaction: Transaction) -> Dict[str, Any]:
    return _compact({
        "accountIBAN": transaction.account,
        "description": transaction.description,
        "newPlanType": transaction.new_plan_type,
        "timestamp": transaction.timestamp
    })


def render_cash_withdrawal(transaction: Transaction) -> Dict[str, Any]:
    return _compact({
        "amount": to_number(transaction.amount),
        "description": transaction.description,
        "timestamp": transaction.timestamp
    })


HISTORY_RENDERERS: Dict[TransactionKind, Renderer] = {
    TransactionKind.SEND_MONEY: render_send_money,
    TransactionKind.PAY_ONLINE: render_pay_online,
    TransactionKind.CREATE_CARD: render_card_event,
    TransactionKind.DELETE_CARD: render_card_event,
    TransactionKind.SPLIT_PAYMENT: render_split_payment,
    TransactionKind.UPGRADE_PLAN: render_upgrade_plan,
    TransactionKind.CASH_WITHDRAWAL: render_cash_withdrawal,
}

REPORT_RENDERERS: Dict[TransactionKind, Renderer] = {
    TransactionKind.SEND_MONEY: render_send_money,
    TransactionKind.PAY_ONLINE: render_pay_online,
    TransactionKind.CREATE_CARD: render_card_event,
    TransactionKind.SPLIT_PAYMENT: render_split_payment,
}


def render_history_entry(transaction: Transaction) -> Dict[str, Any]:
    """Render an entry for a user's full transaction history"""
    return HISTORY_RENDERERS.get(transaction.kind, render_default)(transaction)


def render_report_entry(transaction: Transaction) -> Dict[str, Any]:
    """Render an entry for an account report"""
    return REPORT_RENDERERS.get(transaction.kind, render_default)(transaction)


def render_spending_entry(transaction: Transaction) -> Dict[str, Any]:
    """Render a merchant payment for a spendings report"""
    return {
        "amount": to_number(transaction.amount or Decimal('0')),
        "commerciant": transaction.commerciant,
        "description": transaction.description,
        "timestamp": transaction.timestamp
    }


def spending_entries(transactions: Iterable[Transaction], start_timestamp: int,
                     end_timestamp: int) -> List[Transaction]:
    """Window entries down to merchant spending (no card lifecycle entries)"""
    return [
        t for t in transactions
        if t.in_window(start_timestamp, end_timestamp)
        and t.has_commerciant
        and not t.is_card_lifecycle
    ]


def spending_totals(transactions: Iterable[Transaction]) -> List[Tuple[str, Decimal]]:
    """Total spent per merchant, sorted by merchant name"""
    totals: Dict[str, Decimal] = {}
    for transaction in transactions:
        totals[transaction.commerciant] = (
            totals.get(transaction.commerciant, Decimal('0')) + (transaction.amount or Decimal('0'))
        )
    return sorted(totals.items())


def render_card(card: Card) -> Dict[str, Any]:
    return {
        "cardNumber": card.card_number,
        "status": card.status.value
    }


def render_account(account: Account) -> Dict[str, Any]:
    return {
        "IBAN": account.iban,
        "balance": to_number(account.balance),
        "currency": account.currency,
        "type": account.account_type.value,
        "cards": [render_card(card) for card in account.cards]
    }


def render_user(user: User) -> Dict[str, Any]:
    return {
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "accounts": [render_account(account) for account in user.accounts]
    }
