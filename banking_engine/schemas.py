"""
Pydantic schemas for the batch input document
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .commands import Command
from .currency import ExchangeRate
from .entities import User


class UserInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    email: str
    birth_date: Optional[date] = Field(None, alias="birthDate")
    occupation: Optional[str] = None

    def to_user(self) -> User:
        return User(
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            occupation=self.occupation,
            birth_date=self.birth_date
        )


class ExchangeInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_currency: str = Field(..., alias="from")
    to_currency: str = Field(..., alias="to")
    rate: float = Field(..., gt=0)

    def to_rate(self) -> ExchangeRate:
        return ExchangeRate(
            from_currency=self.from_currency,
            to_currency=self.to_currency,
            rate=self.rate
        )


class CommandInput(BaseModel):
    """One entry of the command list; only the fields its kind uses are present"""
    model_config = ConfigDict(populate_by_name=True)

    command: str
    timestamp: int
    email: Optional[str] = None
    account: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    account_type: Optional[str] = Field(None, alias="accountType")
    interest_rate: Optional[float] = Field(None, alias="interestRate")
    card_number: Optional[str] = Field(None, alias="cardNumber")
    description: Optional[str] = None
    commerciant: Optional[str] = None
    receiver: Optional[str] = None
    alias: Optional[str] = None
    accounts: List[str] = Field(default_factory=list)
    start_timestamp: Optional[int] = Field(None, alias="startTimestamp")
    end_timestamp: Optional[int] = Field(None, alias="endTimestamp")
    new_plan_type: Optional[str] = Field(None, alias="newPlanType")
    location: Optional[str] = None

    def to_command(self) -> Command:
        """Build the engine's command record; floats go through str() into Decimal"""
        return Command(
            name=self.command,
            timestamp=self.timestamp,
            email=self.email,
            account=self.account,
            amount=self.amount,
            currency=self.currency,
            account_type=self.account_type,
            interest_rate=self.interest_rate,
            card_number=self.card_number,
            description=self.description,
            commerciant=self.commerciant,
            receiver=self.receiver,
            alias=self.alias,
            accounts=tuple(self.accounts),
            start_timestamp=self.start_timestamp,
            end_timestamp=self.end_timestamp,
            new_plan_type=self.new_plan_type,
            location=self.location
        )


class BatchDocument(BaseModel):
    """A full batch: users, exchange rates and the ordered command list"""
    model_config = ConfigDict(populate_by_name=True)

    users: List[UserInput] = Field(default_factory=list)
    exchange_rates: List[ExchangeInput] = Field(default_factory=list, alias="exchangeRates")
    commands: List[CommandInput] = Field(default_factory=list)
