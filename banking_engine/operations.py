"""
Operation Handlers Module

One handler per mutating command. Every handler resolves its targets first,
then computes all currency conversions and fees, and only then touches
balances. A missing target or an unreachable conversion aborts the command
with no side effects; business-rule rejections are recorded as transaction
log entries rather than raised.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from .commands import Command, CommandOutput
from .config import get_config
from .entities import Account, AccountType, Card, CardType, Plan, User
from .fees import needs_base_amount, total_with_fee, upgrade_fee
from .ledger import Ledger
from .logging_config import get_logger, log_action
from .rendering import format_amount
from .transactions import Transaction, TransactionKind, TransferType


class OperationProcessor:
    """
    Applies mutating commands to a ledger
    """

    def __init__(self, ledger: Ledger, output: CommandOutput):
        self.ledger = ledger
        self.output = output
        self.logger = get_logger("banking_engine.operations")

    def _log(self, level: str, message: str, command: Command,
             resource: Optional[str] = None, extra: Optional[Dict[str, Any]] = None) -> None:
        log_action(
            self.logger, level, message,
            command=command.name, action=command.name,
            resource=resource, extra=extra
        )

    def _convert(self, amount: Decimal, from_currency: str, to_currency: str,
                 command: Command) -> Optional[Decimal]:
        converted = self.ledger.converter.convert(amount, from_currency, to_currency)
        if converted is None:
            self._log(
                "warning", "Conversion unreachable, command aborted", command,
                extra={"from_currency": from_currency, "to_currency": to_currency}
            )
        return converted

    def _fee_adjusted(self, plan: Plan, amount: Decimal, currency: str,
                      command: Command) -> Optional[Decimal]:
        """Nominal amount plus plan surcharge, in the amount's currency (None if unreachable)"""
        amount_in_base = None
        if needs_base_amount(plan):
            amount_in_base = self._convert(amount, currency, get_config().base_currency, command)
            if amount_in_base is None:
                return None
        return total_with_fee(plan, amount, amount_in_base)

    def _mint_card(self, user: User, account: Account, card_type: CardType,
                   timestamp: int, retry_on_collision: bool = False) -> Optional[Card]:
        """
        Issue a new card on account and log its creation.

        A colliding card number skips the creation unless retry_on_collision
        is set (one-time card replacements must always produce a card).
        """
        card_number = self.ledger.identifiers.next_card_number()
        while self.ledger.card_number_exists(card_number):
            if not retry_on_collision:
                return None
            card_number = self.ledger.identifiers.next_card_number()

        card = Card(card_number=card_number, card_type=card_type)
        account.add_card(card)
        account.record(Transaction(
            kind=TransactionKind.CREATE_CARD,
            timestamp=timestamp,
            description="New card created",
            card=card.card_number,
            card_holder=user.email,
            account=account.iban
        ))
        return card

    # Accounts

    def add_account(self, command: Command) -> None:
        """Open a classic or savings account for a user"""
        user = self.ledger.find_user(command.email)
        if user is None:
            self._log("warning", "User not found", command, resource=f"user:{command.email}")
            return

        try:
            account_type = AccountType(command.account_type)
        except ValueError:
            self._log("warning", f"Unknown account type: {command.account_type}", command)
            return

        iban = self.ledger.identifiers.next_iban()
        if self.ledger.iban_exists(iban):
            self._log("warning", "Generated IBAN already in use, creation skipped", command,
                      resource=f"account:{iban}")
            return

        account = Account(
            iban=iban,
            currency=command.currency,
            account_type=account_type,
            interest_rate=command.interest_rate if account_type == AccountType.SAVINGS else None,
            plan=user.default_plan
        )
        user.add_account(account)
        account.record(Transaction(
            kind=TransactionKind.ADD_ACCOUNT,
            timestamp=command.timestamp,
            description="New account created"
        ))

        self._log("info", "Account created", command, resource=f"account:{iban}",
                  extra={"currency": account.currency, "type": account_type.value,
                         "plan": account.plan.value})

    def add_funds(self, command: Command) -> None:
        """Credit an account, amount taken as already in the account currency"""
        account = self.ledger.find_account(command.account)
        if account is None:
            self._log("warning", "Account not found", command, resource=f"account:{command.account}")
            return

        account.deposit(command.amount)
        self._log("info", "Funds added", command, resource=f"account:{account.iban}",
                  extra={"amount": str(command.amount)})

    def delete_account(self, command: Command) -> None:
        """Close an account, only when its balance is exactly zero"""
        user = self.ledger.find_user(command.email)
        if user is None:
            self.output.emit_error(command, "User not found")
            return

        account = user.find_account(command.account)
        if account is None:
            self.output.emit_error(command, "Account not found")
            return

        if account.balance != 0:
            account.record(Transaction(
                kind=TransactionKind.DELETE_ACCOUNT,
                timestamp=command.timestamp,
                description="Account couldn't be deleted - there are funds remaining"
            ))
            self.output.emit_error(
                command, "Account couldn't be deleted - see transactions for details"
            )
            self._log("warning", "Account not deleted, funds remaining", command,
                      resource=f"account:{account.iban}",
                      extra={"balance": str(account.balance)})
            return

        user.remove_account(account)
        self.output.emit(command, {"success": "Account deleted", "timestamp": command.timestamp})
        self._log("info", "Account deleted", command, resource=f"account:{account.iban}")

    def set_alias(self, command: Command) -> None:
        """Give one of the user's accounts a secondary lookup key"""
        user = self.ledger.find_user(command.email)
        account = user.find_account(command.account) if user else None
        if account is None:
            self._log("warning", "Account not found", command, resource=f"account:{command.account}")
            return

        account.alias = command.alias
        self._log("info", "Alias set", command, resource=f"account:{account.iban}",
                  extra={"alias": command.alias})

    def set_minimum_balance(self, command: Command) -> None:
        """Set the freeze threshold of an account"""
        account = self.ledger.find_account(command.account)
        if account is None:
            self._log("warning", "Account not found", command, resource=f"account:{command.account}")
            return

        account.minimum_balance = command.amount
        self._log("info", "Minimum balance set", command, resource=f"account:{account.iban}",
                  extra={"minimum_balance": str(command.amount)})

    # Cards

    def create_card(self, command: Command) -> None:
        self._create_card(command, CardType.STANDARD)

    def create_one_time_card(self, command: Command) -> None:
        self._create_card(command, CardType.ONE_TIME)

    def _create_card(self, command: Command, card_type: CardType) -> None:
        user = self.ledger.find_user(command.email)
        account = user.find_account(command.account) if user else None
        if account is None:
            self._log("warning", "User or account not found", command,
                      resource=f"account:{command.account}")
            return

        card = self._mint_card(user, account, card_type, command.timestamp)
        if card is None:
            self._log("warning", "Generated card number already in use, creation skipped", command)
            return

        self._log("info", "Card created", command, resource=f"card:{card.card_number}",
                  extra={"type": card_type.value, "account": account.iban})

    def delete_card(self, command: Command) -> None:
        """Remove a card from whichever account holds it"""
        match = self.ledger.find_card(command.card_number)
        if match is None:
            self._log("warning", "Card not found", command, resource=f"card:{command.card_number}")
            return

        user, account, card = match
        account.remove_card(card)
        account.record(Transaction(
            kind=TransactionKind.DELETE_CARD,
            timestamp=command.timestamp,
            description="The card has been destroyed",
            card=card.card_number,
            card_holder=user.email,
            account=account.iban
        ))
        self._log("info", "Card deleted", command, resource=f"card:{card.card_number}")

    def check_card_status(self, command: Command) -> None:
        """Freeze a card whose account is within the margin of its minimum balance"""
        match = self.ledger.find_card(command.card_number)
        if match is None:
            self.output.emit_description(command, "Card not found")
            return

        _, account, card = match
        if account.balance - account.minimum_balance <= get_config().card_freeze_margin:
            card.freeze()
            account.record(Transaction(
                kind=TransactionKind.CHECK_CARD_STATUS,
                timestamp=command.timestamp,
                description="You have reached the minimum amount of funds, the card will be frozen"
            ))
            self._log("warning", "Card frozen", command, resource=f"card:{card.card_number}",
                      extra={"balance": str(account.balance),
                             "minimum_balance": str(account.minimum_balance)})

    # Payments

    def pay_online(self, command: Command) -> None:
        """Charge a card of the requesting user for a merchant payment"""
        user = self.ledger.find_user(command.email)
        account = card = None
        if user is not None:
            for candidate in user.accounts:
                card = candidate.find_card(command.card_number)
                if card is not None:
                    account = candidate
                    break

        if card is None:
            self.output.emit_description(command, "Card not found")
            return

        # A used one-time card is inactive and rejected here as well
        if not card.is_active:
            account.record(Transaction(
                kind=TransactionKind.PAY_ONLINE,
                timestamp=command.timestamp,
                description="The card is frozen"
            ))
            self._log("warning", "Payment rejected, card frozen", command,
                      resource=f"card:{card.card_number}")
            return

        total = self._fee_adjusted(account.plan, command.amount, command.currency, command)
        if total is None:
            return
        debit = self._convert(total, command.currency, account.currency, command)
        nominal = self._convert(command.amount, command.currency, account.currency, command)
        if debit is None or nominal is None:
            return

        if not account.can_afford(debit):
            account.record(Transaction(
                kind=TransactionKind.PAY_ONLINE,
                timestamp=command.timestamp,
                description="Insufficient funds"
            ))
            self._log("warning", "Payment rejected, insufficient funds", command,
                      resource=f"account:{account.iban}",
                      extra={"required": str(debit), "balance": str(account.balance)})
            return

        account.withdraw(debit)
        account.record(Transaction(
            kind=TransactionKind.PAY_ONLINE,
            timestamp=command.timestamp,
            description="Card payment",
            amount=nominal,
            currency=account.currency,
            card=card.card_number,
            commerciant=command.commerciant
        ))
        self._log("info", "Card payment processed", command, resource=f"card:{card.card_number}",
                  extra={"debited": str(debit), "currency": account.currency,
                         "commerciant": command.commerciant})

        if card.is_one_time:
            self._replace_one_time_card(user, account, card, command)

    def _replace_one_time_card(self, user: User, account: Account, card: Card,
                               command: Command) -> None:
        card.mark_used()
        account.record(Transaction(
            kind=TransactionKind.DELETE_CARD,
            timestamp=command.timestamp,
            description="The card has been destroyed",
            card=card.card_number,
            card_holder=user.email,
            account=account.iban
        ))
        replacement = self._mint_card(user, account, CardType.ONE_TIME, command.timestamp,
                                      retry_on_collision=True)
        self._log("info", "One-time card replaced", command, resource=f"card:{card.card_number}",
                  extra={"replacement": replacement.card_number})

    def cash_withdrawal(self, command: Command) -> None:
        """Withdraw cash (amount in the base currency) with a card"""
        match = self.ledger.find_card(command.card_number)
        if match is None:
            self._log("warning", "Card not found", command, resource=f"card:{command.card_number}")
            return

        _, account, card = match
        base_currency = get_config().base_currency
        total = self._fee_adjusted(account.plan, command.amount, base_currency, command)
        if total is None:
            return
        debit = self._convert(total, base_currency, account.currency, command)
        if debit is None:
            return

        if not account.can_afford(debit):
            self._log("warning", "Withdrawal rejected, insufficient funds", command,
                      resource=f"account:{account.iban}")
            return

        if not card.is_active:
            self.output.emit_description(command, "Card has already been used")
            return

        account.withdraw(debit)
        account.record(Transaction(
            kind=TransactionKind.CASH_WITHDRAWAL,
            timestamp=command.timestamp,
            description=f"Cash withdrawal of {format_amount(command.amount)}",
            amount=command.amount
        ))
        self._log("info", "Cash withdrawn", command, resource=f"card:{card.card_number}",
                  extra={"debited": str(debit), "currency": account.currency,
                         "location": command.location})

    def send_money(self, command: Command) -> None:
        """Transfer from one account to another, converting into the receiver's currency"""
        sender = self.ledger.find_account(command.account)
        receiver = self.ledger.find_account(command.receiver)
        if sender is None or receiver is None:
            self._log("warning", "Sender or receiver not found", command,
                      extra={"sender": command.account, "receiver": command.receiver})
            return

        total = self._fee_adjusted(sender.plan, command.amount, sender.currency, command)
        if total is None:
            return
        credited = self._convert(command.amount, sender.currency, receiver.currency, command)
        if credited is None:
            return

        if not sender.can_afford(command.amount):
            sender.record(Transaction(
                kind=TransactionKind.SEND_MONEY,
                timestamp=command.timestamp,
                description="Insufficient funds"
            ))
            self._log("warning", "Transfer rejected, insufficient funds", command,
                      resource=f"account:{sender.iban}")
            return

        sender.withdraw(total)
        receiver.deposit(credited)

        sender.record(Transaction(
            kind=TransactionKind.SEND_MONEY,
            timestamp=command.timestamp,
            description=command.description,
            amount=command.amount,
            currency=sender.currency,
            sender_iban=sender.iban,
            receiver_iban=receiver.iban,
            transfer_type=TransferType.SENT
        ))
        receiver.record(Transaction(
            kind=TransactionKind.SEND_MONEY,
            timestamp=command.timestamp,
            description=command.description,
            amount=credited,
            currency=receiver.currency,
            sender_iban=sender.iban,
            receiver_iban=receiver.iban,
            transfer_type=TransferType.RECEIVED
        ))
        self._log("info", "Transfer completed", command, resource=f"account:{sender.iban}",
                  extra={"receiver": receiver.iban, "debited": str(total),
                         "credited": str(credited)})

    def split_payment(self, command: Command) -> None:
        """
        Divide an amount evenly across accounts.

        Either every participant is debited its share or none is. Every
        resolvable participant logs the split either way; on failure the
        entry names the last account that could not pay.
        """
        ibans = list(command.accounts)
        if not ibans:
            self._log("warning", "Split payment without accounts", command)
            return

        share = command.amount / len(ibans)
        participants: List[Account] = []
        debits: List[Decimal] = []
        failing_iban = None

        for iban in ibans:
            account = self.ledger.find_account(iban)
            if account is None:
                failing_iban = iban
                continue
            debit = self._convert(share, command.currency, account.currency, command)
            if debit is None:
                return
            participants.append(account)
            debits.append(debit)
            if not account.can_afford(debit):
                failing_iban = iban

        description = f"Split payment of {command.amount:.2f} {command.currency}"
        for account, debit in zip(participants, debits):
            if failing_iban is None:
                account.withdraw(debit)
            account.record(Transaction(
                kind=TransactionKind.SPLIT_PAYMENT,
                timestamp=command.timestamp,
                description=description,
                amount=share,
                currency=command.currency,
                involved_accounts=tuple(ibans),
                error_account=failing_iban
            ))

        if failing_iban is None:
            self._log("info", "Split payment completed", command,
                      extra={"accounts": ibans, "share": str(share)})
        else:
            self._log("warning", "Split payment rejected", command,
                      resource=f"account:{failing_iban}", extra={"accounts": ibans})

    # Savings and plans

    def _savings_account(self, command: Command) -> Optional[Account]:
        account = self.ledger.find_account(command.account)
        if account is None:
            self._log("warning", "Account not found", command, resource=f"account:{command.account}")
            return None
        if not account.is_savings:
            self.output.emit_description(command, "This is not a savings account")
            return None
        return account

    def change_interest_rate(self, command: Command) -> None:
        account = self._savings_account(command)
        if account is None:
            return

        account.interest_rate = command.interest_rate
        account.record(Transaction(
            kind=TransactionKind.CHANGE_INTEREST_RATE,
            timestamp=command.timestamp,
            description=f"Interest rate of the account changed to {format_amount(command.interest_rate)}"
        ))
        self._log("info", "Interest rate changed", command, resource=f"account:{account.iban}",
                  extra={"interest_rate": str(command.interest_rate)})

    def add_interest(self, command: Command) -> None:
        """Credit balance * rate / 100 to a savings account"""
        account = self._savings_account(command)
        if account is None:
            return

        interest = account.balance * account.interest_rate / Decimal('100')
        account.deposit(interest)
        account.record(Transaction(
            kind=TransactionKind.ADD_INTEREST,
            timestamp=command.timestamp,
            description="Interest added",
            amount=interest,
            currency=account.currency
        ))
        self._log("info", "Interest added", command, resource=f"account:{account.iban}",
                  extra={"interest": str(interest)})

    def withdraw_savings(self, command: Command) -> None:
        """Withdraw from a savings balance; owner must be of age"""
        account = self.ledger.find_account(command.account)
        owner = self.ledger.find_owner(account) if account else None
        if owner is None:
            self._log("warning", "Account or owner not found", command,
                      resource=f"account:{command.account}")
            return

        age = owner.age_on(self.ledger.today())
        if age is None or age < get_config().minimum_withdrawal_age:
            account.record(Transaction(
                kind=TransactionKind.WITHDRAW_SAVINGS,
                timestamp=command.timestamp,
                description="You don't have the minimum age required."
            ))
            self._log("warning", "Withdrawal rejected, owner under age", command,
                      resource=f"account:{account.iban}", extra={"age": age})
            return

        debit = self._convert(command.amount, command.currency or account.currency,
                              account.currency, command)
        if debit is None:
            return

        if not account.can_afford(debit):
            account.record(Transaction(
                kind=TransactionKind.WITHDRAW_SAVINGS,
                timestamp=command.timestamp,
                description="Insufficient funds"
            ))
            self._log("warning", "Withdrawal rejected, insufficient funds", command,
                      resource=f"account:{account.iban}")
            return

        account.withdraw(debit)
        account.record(Transaction(
            kind=TransactionKind.WITHDRAW_SAVINGS,
            timestamp=command.timestamp,
            description="Savings withdrawal",
            amount=debit,
            currency=account.currency
        ))
        self._log("info", "Savings withdrawn", command, resource=f"account:{account.iban}",
                  extra={"debited": str(debit)})

    def upgrade_plan(self, command: Command) -> None:
        """
        Move an account to silver or gold and charge the upgrade fee.

        The upgrade entry is logged for every resolvable account; targets
        without a fee (standard, student, unknown names) leave plan and
        balance unchanged.
        """
        account = self.ledger.find_account(command.account)
        if account is None:
            self._log("warning", "Account not found", command, resource=f"account:{command.account}")
            return

        try:
            new_plan = Plan(command.new_plan_type)
            fee = upgrade_fee(account.plan, new_plan)
        except ValueError:
            new_plan = fee = None

        previous_plan = account.plan
        debit = None
        if fee is not None:
            debit = self._convert(fee, get_config().base_currency, account.currency, command)
            if debit is None:
                return
            account.plan = new_plan
            account.withdraw(debit)

        account.record(Transaction(
            kind=TransactionKind.UPGRADE_PLAN,
            timestamp=command.timestamp,
            description="Upgrade plan",
            account=account.iban,
            new_plan_type=command.new_plan_type
        ))

        if debit is None:
            self._log("warning", f"Invalid upgrade plan: {command.new_plan_type}", command,
                      resource=f"account:{account.iban}")
            return

        self._log("info", "Plan upgraded", command, resource=f"account:{account.iban}",
                  extra={"from": previous_plan.value, "to": new_plan.value, "fee": str(debit)})
