from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from enum import Enum
from typing import Literal, Optional
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


# Amounts are integers scaled by 10^4.
AMOUNT_PLACES = 4
_QUANTUM = Decimal(1).scaleb(-AMOUNT_PLACES)

MAX_CLIENT_ID = 2 ** 16 - 1
MAX_TX_ID = 2 ** 32 - 1


def to_units(amount: Decimal) -> int:
    """Convert a decimal amount into scaled integer units, rounding half-up to 4 places."""
    return int(amount.quantize(_QUANTUM, rounding=ROUND_HALF_UP).scaleb(AMOUNT_PLACES))


def from_units(units: int) -> Decimal:
    return Decimal(units).scaleb(-AMOUNT_PLACES)


def format_amount(units: int) -> str:
    return f"{from_units(units):.{AMOUNT_PLACES}f}"


class TransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"


class DisputeState(str, Enum):
    clean = "clean"
    disputed = "disputed"
    resolved = "resolved"
    charged_back = "charged_back"


# Kinds that carry their own amount; the rest reference a stored deposit.
AMOUNT_BEARING_TYPES = {TransactionType.deposit.value, TransactionType.withdrawal.value}


def _normalize_type(v):
    if isinstance(v, str):
        return v.strip().lower()
    return v


class TransactionRequest(BaseModel):
    """One input record, in the order the partner sent it."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: TransactionType = Field(..., description="Transaction kind")
    client: int = Field(..., ge=0, le=MAX_CLIENT_ID, description="Client identifier")
    tx: int = Field(..., ge=0, le=MAX_TX_ID, description="Globally unique transaction identifier")
    amount: Optional[Decimal] = Field(
        None,
        gt=0,
        description="Transaction amount, 4 decimal places; only deposits and withdrawals carry one"
    )

    @model_validator(mode="before")
    @classmethod
    def drop_unused_amount(cls, data):
        # Disputes, resolves and chargebacks take the amount of the referenced deposit,
        # so whatever the partner put in their amount column is ignored.
        if isinstance(data, dict):
            kind = _normalize_type(data.get("type"))
            if isinstance(kind, str) and kind not in AMOUNT_BEARING_TYPES:
                data = {k: v for k, v in data.items() if k != "amount"}
        return data

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v):
        return _normalize_type(v)

    @field_validator("client", "tx", mode="before")
    @classmethod
    def validate_identifier(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if v == "":
                return None
        if v is None:
            return v
        if isinstance(v, float):
            raise ValueError("Amount must be given as a decimal string, not a float")
        try:
            amount = Decimal(v)
        except (InvalidOperation, TypeError, ValueError):
            raise ValueError(f"Amount is not a decimal number: {v!r}")
        if not amount.is_finite():
            raise ValueError("Amount must be finite")
        try:
            return amount.quantize(_QUANTUM, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            raise ValueError(f"Amount is out of range: {v!r}")

    @model_validator(mode="after")
    def validate_amount_type_consistency(self):
        if self.type.value in AMOUNT_BEARING_TYPES and self.amount is None:
            raise ValueError(f"{self.type.value} transactions require an amount")
        return self

    @property
    def amount_units(self) -> Optional[int]:
        if self.amount is None:
            return None
        return to_units(self.amount)


class TransactionRecord(BaseModel):
    """A stored deposit, the only kind of transaction that can be disputed."""

    model_config = ConfigDict(validate_assignment=True)

    tx_id: int = Field(..., ge=0, le=MAX_TX_ID)
    client_id: int = Field(..., ge=0, le=MAX_CLIENT_ID)
    amount: int = Field(..., ge=0, description="Amount in units of 0.0001")
    dispute_state: DisputeState = DisputeState.clean


class Account(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    client_id: int = Field(..., ge=0, le=MAX_CLIENT_ID)
    available: int = Field(0, description="Available funds in units of 0.0001")
    held: int = Field(0, ge=0, description="Funds held by open disputes, in units of 0.0001")
    locked: bool = False

    @property
    def total(self) -> int:
        return self.available + self.held


class TransactionOutcome(BaseModel):
    tx: int = Field(..., description="Transaction identifier")
    client: int = Field(..., description="Client identifier")
    type: TransactionType = Field(..., description="Transaction kind")
    status: Literal["applied", "skipped"] = Field(..., description="Whether the ledger changed")
    reason: Optional[str] = Field(None, description="Partner error code when skipped")


class ProcessingSummary(BaseModel):
    accounts_count: int = Field(0, description="Number of client accounts in the ledger")
    transactions_applied: int = Field(0, description="Records that changed the ledger")
    transactions_skipped: int = Field(0, description="Records skipped as partner errors")
    records_malformed: int = Field(0, description="Input rows that failed validation")
