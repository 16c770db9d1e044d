"""
Command Dispatch Module

Maps command kinds to their handlers and runs a queued batch strictly in
arrival order. Commands are resolved to a handler when they are queued;
unknown kinds are reported in the output right away and never reach a
handler.
"""

from collections import deque
from typing import Callable, Deque, Dict, List, Tuple

from .commands import Command, CommandKind, CommandOutput
from .ledger import Ledger
from .logging_config import get_logger, log_action
from .operations import OperationProcessor
from .reports import ReportGenerator

Handler = Callable[[Command], None]


class CommandDispatcher:
    """Handler registry for every command kind"""

    def __init__(self, ledger: Ledger, output: CommandOutput):
        self.ledger = ledger
        self.output = output
        self.operations = OperationProcessor(ledger, output)
        self.reports = ReportGenerator(ledger, output)
        self._handlers: Dict[CommandKind, Handler] = {
            CommandKind.PRINT_USERS: self.reports.print_users,
            CommandKind.PRINT_TRANSACTIONS: self.reports.print_transactions,
            CommandKind.REPORT: self.reports.report,
            CommandKind.SPENDINGS_REPORT: self.reports.spendings_report,
            CommandKind.ADD_ACCOUNT: self.operations.add_account,
            CommandKind.ADD_FUNDS: self.operations.add_funds,
            CommandKind.DELETE_ACCOUNT: self.operations.delete_account,
            CommandKind.SET_ALIAS: self.operations.set_alias,
            CommandKind.SET_MINIMUM_BALANCE: self.operations.set_minimum_balance,
            CommandKind.CREATE_CARD: self.operations.create_card,
            CommandKind.CREATE_ONE_TIME_CARD: self.operations.create_one_time_card,
            CommandKind.DELETE_CARD: self.operations.delete_card,
            CommandKind.CHECK_CARD_STATUS: self.operations.check_card_status,
            CommandKind.PAY_ONLINE: self.operations.pay_online,
            CommandKind.CASH_WITHDRAWAL: self.operations.cash_withdrawal,
            CommandKind.SEND_MONEY: self.operations.send_money,
            CommandKind.SPLIT_PAYMENT: self.operations.split_payment,
            CommandKind.CHANGE_INTEREST_RATE: self.operations.change_interest_rate,
            CommandKind.ADD_INTEREST: self.operations.add_interest,
            CommandKind.WITHDRAW_SAVINGS: self.operations.withdraw_savings,
            CommandKind.UPGRADE_PLAN: self.operations.upgrade_plan,
        }

    def resolve(self, command: Command) -> Handler:
        """
        Get the handler for a command

        Raises:
            ValueError: If the command kind is unknown or has no handler
        """
        kind = command.kind
        handler = self._handlers.get(kind)
        if handler is None:
            raise ValueError(f"Unknown command: {command.name}")
        return handler

    def get_supported_commands(self) -> List[CommandKind]:
        """Get the command kinds with a registered handler"""
        return list(self._handlers.keys())


class CommandInvoker:
    """
    FIFO queue of resolved commands
    """

    def __init__(self, dispatcher: CommandDispatcher):
        self.dispatcher = dispatcher
        self._queue: Deque[Tuple[Command, Handler]] = deque()
        self.logger = get_logger("banking_engine.dispatch")

    @property
    def output(self) -> CommandOutput:
        return self.dispatcher.output

    def add_command(self, command: Command) -> bool:
        """
        Resolve and queue a command.

        Returns:
            True if queued, False if it was rejected as unknown
        """
        try:
            handler = self.dispatcher.resolve(command)
        except ValueError as e:
            self.output.emit_dispatch_error(command.name, str(e))
            log_action(self.logger, "warning", str(e), command=command.name,
                       action="resolve", extra={"timestamp": command.timestamp})
            return False

        self._queue.append((command, handler))
        return True

    def execute(self) -> CommandOutput:
        """
        Run every queued command in order, draining the queue, then reset the
        identifier generators so the next batch starts from the seeds.
        """
        executed = 0
        while self._queue:
            command, handler = self._queue.popleft()
            handler(command)
            executed += 1

        self.dispatcher.ledger.reset_identifiers()
        log_action(self.logger, "info", "Batch executed", action="execute",
                   extra={"commands": executed, "results": len(self.output)})
        return self.output
