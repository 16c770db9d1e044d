"""
Test suite for query commands
"""

from decimal import Decimal

from banking_engine.commands import Command, CommandOutput
from banking_engine.entities import Account, AccountType, Card, User
from banking_engine.ledger import Ledger
from banking_engine.reports import ReportGenerator
from banking_engine.transactions import Transaction, TransactionKind


class TestReportGenerator:
    """Test printUsers, printTransactions, report and spendingsReport"""

    def setup_method(self):
        self.user = User(email="ana@example.com", first_name="Ana", last_name="Pop")
        self.account = Account(iban="RO01", currency="RON", balance=Decimal('87.5'))
        self.account.add_card(Card("1111"))
        self.savings = Account(iban="RO02", currency="EUR", account_type=AccountType.SAVINGS)
        self.user.add_account(self.account)
        self.user.add_account(self.savings)

        self.account.record(Transaction(TransactionKind.ADD_ACCOUNT, 1, "New account created"))
        self.savings.record(Transaction(TransactionKind.ADD_ACCOUNT, 2, "New account created"))
        self.account.record(Transaction(TransactionKind.CREATE_CARD, 3, "New card created",
                                        card="1111", card_holder="ana@example.com",
                                        account="RO01"))
        self.account.record(Transaction(TransactionKind.PAY_ONLINE, 4, "Card payment",
                                        amount=Decimal('12.5'), currency="RON", card="1111",
                                        commerciant="Shop"))

        self.output = CommandOutput()
        self.reports = ReportGenerator(Ledger(users=[self.user]), self.output)

    def test_print_users(self):
        self.reports.print_users(Command("printUsers", 10))

        entry = self.output.entries[0]
        assert entry["command"] == "printUsers"
        assert entry["timestamp"] == 10
        assert entry["output"][0]["email"] == "ana@example.com"
        assert [a["IBAN"] for a in entry["output"][0]["accounts"]] == ["RO01", "RO02"]

    def test_print_transactions(self):
        """Test history spans accounts in timestamp order"""
        self.reports.print_transactions(Command("printTransactions", 10, email="ana@example.com"))

        history = self.output.entries[0]["output"]
        assert [t["timestamp"] for t in history] == [1, 2, 3, 4]
        assert history[2] == {
            "account": "RO01", "card": "1111", "cardHolder": "ana@example.com",
            "description": "New card created", "timestamp": 3
        }

    def test_print_transactions_empty_or_missing(self):
        self.user.accounts.clear()
        self.reports.print_transactions(Command("printTransactions", 10, email="ana@example.com"))
        assert len(self.output) == 0

        self.reports.print_transactions(Command("printTransactions", 11, email="x@example.com"))
        assert self.output.entries[0]["output"] == {"description": "User not found", "timestamp": 11}

    def test_report_window(self):
        self.reports.report(Command("report", 10, account="RO01",
                                    start_timestamp=3, end_timestamp=4))

        assert self.output.entries[0]["output"] == {
            "balance": 87.5,
            "currency": "RON",
            "IBAN": "RO01",
            "transactions": [
                {"account": "RO01", "card": "1111", "cardHolder": "ana@example.com",
                 "description": "New card created", "timestamp": 3},
                {"amount": 12.5, "commerciant": "Shop", "description": "Card payment",
                 "timestamp": 4},
            ]
        }

    def test_report_account_not_found(self):
        self.reports.report(Command("report", 10, account="RO99", start_timestamp=0,
                                    end_timestamp=5))

        assert self.output.entries[0]["output"] == {
            "description": "Account not found", "timestamp": 10
        }

    def test_spendings_report(self):
        self.reports.spendings_report(Command("spendingsReport", 10, account="RO01",
                                              start_timestamp=0, end_timestamp=10))

        assert self.output.entries[0]["output"] == {
            "balance": 87.5,
            "commerciants": [{"commerciant": "Shop", "total": 12.5}],
            "currency": "RON",
            "IBAN": "RO01",
            "transactions": [
                {"amount": 12.5, "commerciant": "Shop", "description": "Card payment",
                 "timestamp": 4}
            ]
        }

    def test_spendings_report_rejects_savings(self):
        self.reports.spendings_report(Command("spendingsReport", 10, account="RO02",
                                              start_timestamp=0, end_timestamp=10))

        assert self.output.entries[0]["output"] == {
            "error": "This kind of report is not supported for a saving account"
        }
