import pytest
from decimal import Decimal
from pydantic import ValidationError

from models import Account, TransactionRequest, TransactionType, format_amount, from_units, to_units


class TestValidation:
    """Test input record validation."""

    def test_csv_style_fields(self):
        """String fields with padding are accepted."""
        request = TransactionRequest.model_validate(
            {"type": " Deposit ", "client": " 1", "tx": "2 ", "amount": " 1.25 "}
        )

        assert request.type == TransactionType.deposit
        assert request.client == 1
        assert request.tx == 2
        assert request.amount == Decimal("1.2500")
        assert request.amount_units == 12500

    def test_amount_rounded_to_four_places(self):
        request = TransactionRequest(type="deposit", client=1, tx=1, amount="0.12345")

        assert request.amount == Decimal("0.1235")

    @pytest.mark.parametrize("kind", ["dispute", "resolve", "chargeback"])
    def test_amount_ignored_for_references(self, kind):
        """Disputes, resolves and chargebacks never carry an amount."""
        request = TransactionRequest.model_validate(
            {"type": kind, "client": "1", "tx": "1", "amount": "not a number"}
        )

        assert request.amount is None
        assert request.amount_units is None

    @pytest.mark.parametrize("kind", ["deposit", "withdrawal"])
    @pytest.mark.parametrize("amount", [None, "", "   "])
    def test_missing_amount(self, kind, amount):
        with pytest.raises(ValidationError):
            TransactionRequest.model_validate({"type": kind, "client": "1", "tx": "1", "amount": amount})

    @pytest.mark.parametrize("amount", ["0", "0.00001", "-1", "abc", "NaN", "Infinity", "1e40"])
    def test_invalid_amount(self, amount):
        with pytest.raises(ValidationError):
            TransactionRequest(type="deposit", client=1, tx=1, amount=amount)

    def test_float_amount_rejected(self):
        with pytest.raises(ValidationError):
            TransactionRequest(type="deposit", client=1, tx=1, amount=1.5)

    @pytest.mark.parametrize("field,value", [
        ("client", "-1"),
        ("client", "65536"),
        ("client", "one"),
        ("tx", "-1"),
        ("tx", "4294967296"),
        ("tx", ""),
    ])
    def test_identifier_out_of_range(self, field, value):
        data = {"type": "deposit", "client": "1", "tx": "1", "amount": "1"}
        data[field] = value

        with pytest.raises(ValidationError):
            TransactionRequest.model_validate(data)

    def test_identifier_bounds_accepted(self):
        request = TransactionRequest(type="withdrawal", client="65535", tx="4294967295", amount="1")

        assert request.client == 65535
        assert request.tx == 4294967295

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            TransactionRequest(type="transfer", client=1, tx=1, amount="1")


class TestAmounts:
    """Test scaled integer amounts."""

    def test_units_conversion(self):
        assert to_units(Decimal("1.5")) == 15000
        assert to_units(Decimal("0.0001")) == 1
        assert from_units(35000) == Decimal("3.5")

    @pytest.mark.parametrize("units,expected", [
        (0, "0.0000"),
        (1, "0.0001"),
        (35000, "3.5000"),
        (123456789, "12345.6789"),
    ])
    def test_format_amount(self, units, expected):
        assert format_amount(units) == expected

    def test_total_is_derived(self):
        account = Account(client_id=1, available=30000, held=5000)

        assert account.total == 35000

    def test_held_cannot_go_negative(self):
        account = Account(client_id=1)

        with pytest.raises(ValidationError):
            account.held -= 1
