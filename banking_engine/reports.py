"""
Reporting Module

Query commands: they read the ledger and emit rendered results without
mutating anything.
"""

import sys
from typing import Tuple

from .commands import Command, CommandOutput
from .ledger import Ledger
from .logging_config import get_logger, log_action
from .rendering import (
    render_history_entry, render_report_entry, render_spending_entry, render_user,
    spending_entries, spending_totals, to_number
)


def _window(command: Command) -> Tuple[int, int]:
    """Report window; an open bound covers the whole log"""
    start = command.start_timestamp if command.start_timestamp is not None else 0
    end = command.end_timestamp if command.end_timestamp is not None else sys.maxsize
    return start, end


class ReportGenerator:
    """
    Renders users, histories and account reports into the command output
    """

    def __init__(self, ledger: Ledger, output: CommandOutput):
        self.ledger = ledger
        self.output = output
        self.logger = get_logger("banking_engine.reports")

    def print_users(self, command: Command) -> None:
        """Emit every user with their accounts and cards"""
        self.output.emit(command, [render_user(user) for user in self.ledger.users])

    def print_transactions(self, command: Command) -> None:
        """Emit a user's full history across accounts, ordered by timestamp"""
        user = self.ledger.find_user(command.email)
        if user is None:
            self.output.emit_description(command, "User not found")
            return

        history = user.all_transactions()
        if not history:
            log_action(self.logger, "debug", "No transactions to print",
                       command=command.name, resource=f"user:{user.email}")
            return

        self.output.emit(command, [render_history_entry(t) for t in history])

    def report(self, command: Command) -> None:
        """
        Emit an account's balance and the log entries inside
        [start_timestamp, end_timestamp]
        """
        account = self.ledger.find_account(command.account)
        if account is None:
            self.output.emit_description(command, "Account not found")
            return

        start, end = _window(command)
        window = [t for t in account.transactions if t.in_window(start, end)]
        self.output.emit(command, {
            "balance": to_number(account.balance),
            "currency": account.currency,
            "IBAN": account.iban,
            "transactions": [render_report_entry(t) for t in window]
        })

    def spendings_report(self, command: Command) -> None:
        """
        Emit merchant payments inside the window with the total spent per
        merchant. Savings accounts have no spendings report.
        """
        account = self.ledger.find_account(command.account)
        if account is None:
            self.output.emit_description(command, "Account not found")
            return

        if account.is_savings:
            self.output.emit(command, {
                "error": "This kind of report is not supported for a saving account"
            })
            return

        payments = spending_entries(account.transactions, *_window(command))
        self.output.emit(command, {
            "balance": to_number(account.balance),
            "commerciants": [
                {"commerciant": name, "total": to_number(total)}
                for name, total in spending_totals(payments)
            ],
            "currency": account.currency,
            "IBAN": account.iban,
            "transactions": [render_spending_entry(t) for t in payments]
        })
