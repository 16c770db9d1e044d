"""
Test suite for operation handlers

Covers every mutating command: fee policy on debits, currency conversion,
rejections recorded as transactions, and the all-or-nothing split payment.
"""

import pytest
from decimal import Decimal
from datetime import date

from banking_engine.commands import Command, CommandOutput
from banking_engine.currency import ExchangeRate
from banking_engine.entities import (
    Account, AccountType, Card, CardStatus, CardType, Plan, User
)
from banking_engine.identifiers import IdentifierGenerator
from banking_engine.ledger import Ledger
from banking_engine.operations import OperationProcessor
from banking_engine.transactions import TransactionKind, TransferType


class OperationTestCase:
    """Shared ledger: Ana (RON + EUR accounts, born 2000) and Dan (RON, born 2004)"""

    def setup_method(self):
        self.ana = User(email="ana@example.com", first_name="Ana", last_name="Pop",
                        occupation="engineer", birth_date=date(2000, 3, 1))
        self.dan = User(email="dan@example.com", first_name="Dan", last_name="Ion",
                        occupation="student", birth_date=date(2004, 6, 15))

        self.ron = Account(iban="RO11POOB0000000000000001", currency="RON",
                           balance=Decimal('1000'))
        self.eur = Account(iban="RO11POOB0000000000000002", currency="EUR",
                           balance=Decimal('100'))
        self.dan_ron = Account(iban="RO11POOB0000000000000003", currency="RON",
                               balance=Decimal('50'))
        self.ana.add_account(self.ron)
        self.ana.add_account(self.eur)
        self.dan.add_account(self.dan_ron)

        self.card = Card("1000000000000001")
        self.ron.add_card(self.card)

        self.ledger = Ledger(
            users=[self.ana, self.dan],
            rates=[ExchangeRate("EUR", "RON", Decimal('5'))],
            identifiers=IdentifierGenerator(iban_seed=11, card_seed=12),
            today=lambda: date(2024, 9, 1)
        )
        self.output = CommandOutput()
        self.processor = OperationProcessor(self.ledger, self.output)

    @staticmethod
    def command(name, timestamp=1, **fields):
        return Command(name=name, timestamp=timestamp, **fields)


class TestAccountCommands(OperationTestCase):
    """Test account creation, funding, aliasing and deletion"""

    def test_add_classic_account(self):
        self.processor.add_account(self.command(
            "addAccount", email="ana@example.com", currency="usd", account_type="classic"
        ))

        account = self.ana.accounts[-1]
        assert len(self.ana.accounts) == 3
        assert account.currency == "USD"
        assert account.account_type == AccountType.CLASSIC
        assert account.balance == Decimal('0')
        assert account.plan == Plan.STANDARD
        assert account.transactions[0].description == "New account created"
        assert len(self.output) == 0

    def test_add_savings_account_for_student(self):
        self.processor.add_account(self.command(
            "addAccount", email="dan@example.com", currency="RON",
            account_type="savings", interest_rate=Decimal('2.5')
        ))

        account = self.dan.accounts[-1]
        assert account.is_savings
        assert account.interest_rate == Decimal('2.5')
        assert account.plan == Plan.STUDENT

    def test_add_account_missing_user_or_type(self):
        self.processor.add_account(self.command(
            "addAccount", email="nobody@example.com", currency="RON", account_type="classic"
        ))
        self.processor.add_account(self.command(
            "addAccount", email="ana@example.com", currency="RON", account_type="business"
        ))

        assert len(self.ana.accounts) == 2
        assert len(self.output) == 0

    def test_add_account_iban_collision_skipped(self):
        """Test a colliding generated IBAN skips the creation without retrying"""
        predicted = IdentifierGenerator(iban_seed=11).next_iban()
        self.dan.add_account(Account(iban=predicted, currency="RON"))

        self.processor.add_account(self.command(
            "addAccount", email="ana@example.com", currency="RON", account_type="classic"
        ))
        assert len(self.ana.accounts) == 2

        self.processor.add_account(self.command(
            "addAccount", email="ana@example.com", currency="RON", account_type="classic"
        ))
        assert len(self.ana.accounts) == 3

    def test_add_funds(self):
        self.processor.add_funds(self.command("addFunds", account=self.eur.iban, amount=25.5))
        assert self.eur.balance == Decimal('125.5')

        self.processor.add_funds(self.command("addFunds", account="RO00", amount=10))
        assert self.eur.balance == Decimal('125.5')

    def test_set_alias_and_minimum_balance(self):
        self.processor.set_alias(self.command(
            "setAlias", email="ana@example.com", account=self.eur.iban, alias="holiday"
        ))
        self.processor.set_minimum_balance(self.command(
            "setMinimumBalance", account="holiday", amount=20
        ))

        assert self.eur.alias == "holiday"
        assert self.eur.minimum_balance == Decimal('20')

    def test_set_alias_requires_owner(self):
        self.processor.set_alias(self.command(
            "setAlias", email="dan@example.com", account=self.eur.iban, alias="stolen"
        ))
        assert self.eur.alias is None

    def test_delete_account_with_zero_balance(self):
        empty = Account(iban="RO11POOB0000000000000009", currency="RON")
        empty.add_card(Card("5555"))
        self.ana.add_account(empty)

        self.processor.delete_account(self.command(
            "deleteAccount", timestamp=9, email="ana@example.com", account=empty.iban
        ))

        assert empty not in self.ana.accounts
        assert not self.ledger.card_number_exists("5555")
        assert self.output.entries == [{
            "command": "deleteAccount",
            "output": {"success": "Account deleted", "timestamp": 9},
            "timestamp": 9
        }]

    def test_delete_account_with_funds_rejected(self):
        self.processor.delete_account(self.command(
            "deleteAccount", timestamp=9, email="ana@example.com", account=self.ron.iban
        ))

        assert self.ron in self.ana.accounts
        assert self.ron.balance == Decimal('1000')
        assert self.ron.transactions[-1].kind == TransactionKind.DELETE_ACCOUNT
        assert self.ron.transactions[-1].description == \
            "Account couldn't be deleted - there are funds remaining"
        assert self.output.entries[0]["output"] == {
            "error": "Account couldn't be deleted - see transactions for details",
            "timestamp": 9
        }

    def test_delete_account_not_found(self):
        self.processor.delete_account(self.command(
            "deleteAccount", email="nobody@example.com", account=self.ron.iban
        ))
        self.processor.delete_account(self.command(
            "deleteAccount", email="dan@example.com", account=self.ron.iban
        ))

        assert [e["output"]["error"] for e in self.output] == ["User not found", "Account not found"]
        assert self.ron in self.ana.accounts


class TestCardCommands(OperationTestCase):
    """Test card creation, deletion and status checks"""

    def test_create_card(self):
        self.processor.create_card(self.command(
            "createCard", timestamp=3, email="ana@example.com", account=self.eur.iban
        ))

        card = self.eur.cards[-1]
        assert card.card_type == CardType.STANDARD
        assert card.is_active
        entry = self.eur.transactions[-1]
        assert entry.kind == TransactionKind.CREATE_CARD
        assert entry.description == "New card created"
        assert entry.card == card.card_number
        assert entry.card_holder == "ana@example.com"
        assert entry.account == self.eur.iban

    def test_create_one_time_card(self):
        self.processor.create_one_time_card(self.command(
            "createOneTimeCard", email="ana@example.com", account=self.eur.iban
        ))
        assert self.eur.cards[-1].card_type == CardType.ONE_TIME

    def test_create_card_requires_owned_account(self):
        self.processor.create_card(self.command(
            "createCard", email="dan@example.com", account=self.eur.iban
        ))
        assert self.eur.cards == []
        assert self.eur.transactions == []

    def test_create_card_collision_skipped(self):
        predicted = IdentifierGenerator(card_seed=12).next_card_number()
        self.dan_ron.add_card(Card(predicted))

        self.processor.create_card(self.command(
            "createCard", email="ana@example.com", account=self.eur.iban
        ))
        assert self.eur.cards == []

    def test_delete_card(self):
        self.processor.delete_card(self.command(
            "deleteCard", timestamp=4, card_number=self.card.card_number
        ))

        assert self.ron.cards == []
        entry = self.ron.transactions[-1]
        assert entry.kind == TransactionKind.DELETE_CARD
        assert entry.description == "The card has been destroyed"
        assert entry.card_holder == "ana@example.com"

    def test_delete_missing_card(self):
        self.processor.delete_card(self.command("deleteCard", card_number="0000"))
        assert len(self.output) == 0

    def test_check_card_status_freezes(self):
        self.ron.minimum_balance = Decimal('970')

        self.processor.check_card_status(self.command(
            "checkCardStatus", card_number=self.card.card_number
        ))

        assert self.card.status == CardStatus.FROZEN
        assert self.ron.transactions[-1].description == \
            "You have reached the minimum amount of funds, the card will be frozen"

    def test_check_card_status_above_margin(self):
        self.ron.minimum_balance = Decimal('900')

        self.processor.check_card_status(self.command(
            "checkCardStatus", card_number=self.card.card_number
        ))

        assert self.card.is_active
        assert self.ron.transactions == []

    def test_check_card_status_not_found(self):
        self.processor.check_card_status(self.command(
            "checkCardStatus", timestamp=6, card_number="0000"
        ))
        assert self.output.entries[0]["output"] == {"description": "Card not found", "timestamp": 6}


class TestPayOnline(OperationTestCase):
    """Test online card payments"""

    def pay(self, amount, currency="RON", card_number=None, email="ana@example.com"):
        self.processor.pay_online(self.command(
            "payOnline", timestamp=5, email=email,
            card_number=card_number or self.card.card_number,
            amount=amount, currency=currency, commerciant="Shop", description="groceries"
        ))

    def test_standard_plan_surcharge(self):
        self.pay(100)

        assert self.ron.balance == Decimal('899.8')
        entry = self.ron.transactions[-1]
        assert entry.description == "Card payment"
        assert entry.amount == Decimal('100')
        assert entry.commerciant == "Shop"

    def test_silver_plan_under_threshold(self):
        self.ron.plan = Plan.SILVER
        self.pay(400)
        assert self.ron.balance == Decimal('599.6')

    def test_silver_plan_over_threshold(self):
        self.ron.plan = Plan.SILVER
        self.pay(600)
        assert self.ron.balance == Decimal('400')

    def test_payment_converted_to_account_currency(self):
        """Test the fee-adjusted total is converted before the debit"""
        eur_card = Card("2000000000000002")
        self.eur.add_card(eur_card)

        self.pay(100, currency="RON", card_number=eur_card.card_number)

        assert self.eur.balance == Decimal('79.96')
        assert self.eur.transactions[-1].amount == Decimal('20')
        assert self.eur.transactions[-1].currency == "EUR"

    def test_frozen_card(self):
        self.card.freeze()
        self.pay(10)

        assert self.ron.balance == Decimal('1000')
        assert self.ron.transactions[-1].description == "The card is frozen"

    def test_insufficient_funds(self):
        self.pay(5000)

        assert self.ron.balance == Decimal('1000')
        assert self.ron.transactions[-1].description == "Insufficient funds"
        assert self.ron.transactions[-1].amount is None

    def test_card_not_found(self):
        self.pay(10, card_number="0000")
        self.pay(10, email="dan@example.com")

        assert [e["output"] for e in self.output] == [
            {"description": "Card not found", "timestamp": 5},
            {"description": "Card not found", "timestamp": 5},
        ]
        assert self.ron.balance == Decimal('1000')

    def test_unreachable_currency_aborts(self):
        self.pay(10, currency="JPY")

        assert self.ron.balance == Decimal('1000')
        assert self.ron.transactions == []

    def test_one_time_card_replaced_once(self):
        one_time = Card("3000000000000003", card_type=CardType.ONE_TIME)
        self.ron.add_card(one_time)

        self.pay(10, card_number=one_time.card_number)

        assert one_time.used
        assert one_time.status == CardStatus.INACTIVE
        replacements = [c for c in self.ron.cards if c.is_one_time and c is not one_time]
        assert len(replacements) == 1
        assert replacements[0].is_active
        assert [t.description for t in self.ron.transactions] == [
            "Card payment", "The card has been destroyed", "New card created"
        ]

        # A used one-time card is never charged again
        balance = self.ron.balance
        self.pay(10, card_number=one_time.card_number)

        assert self.ron.balance == balance
        assert len(self.ron.cards) == 3

    def test_used_one_time_card_rejection_logged(self):
        """Test paying with a spent one-time card records a rejection"""
        one_time = Card("3000000000000003", card_type=CardType.ONE_TIME)
        self.ron.add_card(one_time)
        self.pay(10, card_number=one_time.card_number)
        logged = len(self.ron.transactions)

        self.pay(10, card_number=one_time.card_number)

        assert [t.description for t in self.ron.transactions[logged:]] == ["The card is frozen"]
        assert self.ron.transactions[-1].kind == TransactionKind.PAY_ONLINE
        assert len(self.output) == 0


class TestCashWithdrawal(OperationTestCase):
    """Test ATM withdrawals"""

    def withdraw(self, amount, card_number=None):
        self.processor.cash_withdrawal(self.command(
            "cashWithdrawal", timestamp=8, card_number=card_number or self.card.card_number,
            amount=amount, location="Bucharest", email="ana@example.com"
        ))

    def test_withdrawal(self):
        self.withdraw(100)

        assert self.ron.balance == Decimal('899.8')
        assert self.ron.transactions[-1].description == "Cash withdrawal of 100.0"
        assert self.ron.transactions[-1].amount == Decimal('100')

    def test_withdrawal_from_foreign_account(self):
        card = Card("2000000000000002")
        self.eur.add_card(card)
        self.eur.plan = Plan.GOLD

        self.withdraw(50, card_number=card.card_number)

        assert self.eur.balance == Decimal('90')

    def test_insufficient_funds_is_silent(self):
        self.withdraw(2000)

        assert self.ron.balance == Decimal('1000')
        assert self.ron.transactions == []
        assert len(self.output) == 0

    def test_inactive_card(self):
        self.card.freeze()
        self.withdraw(10)

        assert self.ron.balance == Decimal('1000')
        assert self.output.entries[0]["output"] == {
            "description": "Card has already been used", "timestamp": 8
        }


class TestSendMoney(OperationTestCase):
    """Test transfers between accounts"""

    def send(self, amount, sender, receiver):
        self.processor.send_money(self.command(
            "sendMoney", timestamp=7, account=sender, receiver=receiver,
            amount=amount, description="rent", email="ana@example.com"
        ))

    def test_cross_currency_transfer(self):
        self.send(10, self.eur.iban, self.dan_ron.iban)

        assert self.eur.balance == Decimal('89.98')
        assert self.dan_ron.balance == Decimal('100')

        sent = self.eur.transactions[-1]
        assert sent.transfer_type == TransferType.SENT
        assert sent.amount == Decimal('10')
        assert sent.currency == "EUR"
        assert sent.sender_iban == self.eur.iban
        assert sent.receiver_iban == self.dan_ron.iban

        received = self.dan_ron.transactions[-1]
        assert received.transfer_type == TransferType.RECEIVED
        assert received.amount == Decimal('50')
        assert received.currency == "RON"

    def test_transfer_by_alias(self):
        self.dan_ron.alias = "dan"
        self.send(100, self.ron.iban, "dan")

        assert self.dan_ron.balance == Decimal('150')
        assert self.ron.balance == Decimal('899.8')

    def test_insufficient_funds(self):
        self.send(60, self.dan_ron.iban, self.ron.iban)

        assert self.dan_ron.balance == Decimal('50')
        assert self.ron.balance == Decimal('1000')
        assert self.dan_ron.transactions[-1].description == "Insufficient funds"
        assert self.ron.transactions == []

    def test_missing_receiver(self):
        self.send(10, self.ron.iban, "RO00")

        assert self.ron.balance == Decimal('1000')
        assert self.ron.transactions == []


class TestSplitPayment(OperationTestCase):
    """Test all-or-nothing split payments"""

    def split(self, amount, accounts, currency="RON"):
        self.processor.split_payment(self.command(
            "splitPayment", timestamp=10, amount=amount, currency=currency,
            accounts=accounts
        ))

    def test_all_participants_pay(self):
        accounts = [self.ron.iban, self.eur.iban]
        self.split(100, accounts)

        assert self.ron.balance == Decimal('950')
        assert self.eur.balance == Decimal('90')
        for account in (self.ron, self.eur):
            entry = account.transactions[-1]
            assert entry.description == "Split payment of 100.00 RON"
            assert entry.amount == Decimal('50')
            assert entry.currency == "RON"
            assert entry.involved_accounts == tuple(accounts)
            assert entry.error_account is None

    def test_any_failure_debits_nobody(self):
        accounts = [self.ron.iban, self.dan_ron.iban, self.eur.iban]
        self.split(300, accounts)

        assert self.ron.balance == Decimal('1000')
        assert self.dan_ron.balance == Decimal('50')
        assert self.eur.balance == Decimal('100')
        for account in (self.ron, self.dan_ron, self.eur):
            assert account.transactions[-1].error_account == self.dan_ron.iban

    def test_last_failing_account_reported(self):
        self.eur.balance = Decimal('1')
        self.split(300, [self.dan_ron.iban, self.eur.iban])

        assert self.dan_ron.transactions[-1].error_account == self.eur.iban

    def test_unresolvable_account_fails_split(self):
        self.split(100, [self.ron.iban, "RO00"])

        assert self.ron.balance == Decimal('1000')
        assert self.ron.transactions[-1].error_account == "RO00"

    def test_unreachable_conversion_aborts(self):
        self.split(100, [self.ron.iban, self.eur.iban], currency="JPY")

        assert self.ron.transactions == []
        assert self.eur.transactions == []


class TestSavingsCommands(OperationTestCase):
    """Test interest and savings withdrawals"""

    def setup_method(self):
        super().setup_method()
        self.savings = Account(iban="RO11POOB0000000000000004", currency="RON",
                               account_type=AccountType.SAVINGS,
                               interest_rate=Decimal('10'), balance=Decimal('200'))
        self.ana.add_account(self.savings)

    def test_add_interest(self):
        self.processor.add_interest(self.command("addInterest", account=self.savings.iban))

        assert self.savings.balance == Decimal('220')
        entry = self.savings.transactions[-1]
        assert entry.kind == TransactionKind.ADD_INTEREST
        assert entry.amount == Decimal('20')
        assert entry.currency == "RON"

    def test_change_interest_rate(self):
        self.processor.change_interest_rate(self.command(
            "changeInterestRate", account=self.savings.iban, interest_rate=Decimal('3.5')
        ))

        assert self.savings.interest_rate == Decimal('3.5')
        assert self.savings.transactions[-1].description == \
            "Interest rate of the account changed to 3.5"

    def test_interest_on_classic_account(self):
        self.processor.add_interest(self.command("addInterest", timestamp=3, account=self.ron.iban))
        self.processor.change_interest_rate(self.command(
            "changeInterestRate", timestamp=4, account=self.ron.iban, interest_rate=Decimal('1')
        ))

        assert [e["output"] for e in self.output] == [
            {"description": "This is not a savings account", "timestamp": 3},
            {"description": "This is not a savings account", "timestamp": 4},
        ]
        assert self.ron.balance == Decimal('1000')
        assert self.ron.transactions == []

    def test_withdraw_savings(self):
        self.processor.withdraw_savings(self.command(
            "withdrawSavings", account=self.savings.iban, amount=10, currency="EUR"
        ))

        assert self.savings.balance == Decimal('150')
        assert self.savings.transactions[-1].description == "Savings withdrawal"

    def test_withdraw_savings_underage(self):
        """Test a 20 year old owner cannot withdraw"""
        savings = Account(iban="RO11POOB0000000000000005", currency="RON",
                          account_type=AccountType.SAVINGS, balance=Decimal('200'))
        self.dan.add_account(savings)
        assert self.dan.age_on(self.ledger.today()) == 20

        self.processor.withdraw_savings(self.command(
            "withdrawSavings", account=savings.iban, amount=10, currency="RON"
        ))

        assert savings.balance == Decimal('200')
        assert savings.transactions[-1].description == "You don't have the minimum age required."

    def test_withdraw_savings_insufficient(self):
        self.processor.withdraw_savings(self.command(
            "withdrawSavings", account=self.savings.iban, amount=500, currency="RON"
        ))

        assert self.savings.balance == Decimal('200')
        assert self.savings.transactions[-1].description == "Insufficient funds"


class TestUpgradePlan(OperationTestCase):
    """Test plan upgrades"""

    def upgrade(self, account, plan):
        self.processor.upgrade_plan(self.command(
            "upgradePlan", timestamp=12, account=account.iban, new_plan_type=plan
        ))

    def test_standard_to_gold(self):
        self.upgrade(self.ron, "gold")

        assert self.ron.plan == Plan.GOLD
        assert self.ron.balance == Decimal('650')
        entry = self.ron.transactions[-1]
        assert entry.description == "Upgrade plan"
        assert entry.account == self.ron.iban
        assert entry.new_plan_type == "gold"

    def test_silver_then_gold(self):
        self.upgrade(self.ron, "silver")
        assert self.ron.balance == Decimal('900')

        self.upgrade(self.ron, "gold")
        assert self.ron.balance == Decimal('650')
        assert self.ron.plan == Plan.GOLD

    def test_fee_converted_to_account_currency(self):
        self.upgrade(self.eur, "gold")
        assert self.eur.balance == Decimal('30')

    def test_no_balance_check(self):
        self.upgrade(self.dan_ron, "silver")
        assert self.dan_ron.balance == Decimal('-50')

    @pytest.mark.parametrize("plan", ["platinum", "standard", "student"])
    def test_target_without_fee_still_logged(self, plan):
        """Test an upgrade entry is recorded even when nothing changes"""
        self.upgrade(self.ron, plan)

        assert self.ron.plan == Plan.STANDARD
        assert self.ron.balance == Decimal('1000')
        assert len(self.ron.transactions) == 1
        entry = self.ron.transactions[0]
        assert entry.kind == TransactionKind.UPGRADE_PLAN
        assert entry.description == "Upgrade plan"
        assert entry.new_plan_type == plan
        assert entry.account == self.ron.iban

    def test_missing_account_is_noop(self):
        self.processor.upgrade_plan(self.command(
            "upgradePlan", account="RO00", new_plan_type="gold"
        ))
        assert self.ron.transactions == []
