import pytest
from unittest.mock import patch

from models import DisputeState
from repositories import InMemoryLedgerRepository, get_ledger_repository


@pytest.fixture
def repo():
    return InMemoryLedgerRepository()


class TestAccounts:
    """Test account storage."""

    def test_get_or_create_account(self, repo):
        account = repo.get_or_create_account(5)

        assert account.client_id == 5
        assert (account.available, account.held, account.total, account.locked) == (0, 0, 0, False)
        assert repo.get_or_create_account(5) is account
        assert repo.get_accounts_count() == 1

    def test_get_account_missing(self, repo):
        assert repo.get_account(1) is None
        assert repo.get_accounts_count() == 0

    def test_list_accounts_sorted(self, repo):
        for client_id in (9, 3, 6):
            repo.get_or_create_account(client_id)

        assert [account.client_id for account in repo.list_accounts()] == [3, 6, 9]


class TestTransactionRecords:
    """Test deposit storage and transaction id uniqueness."""

    def test_record_deposit(self, repo):
        assert repo.record_deposit(1, 2, 30000) is True

        deposit = repo.get_deposit(1)
        assert (deposit.tx_id, deposit.client_id, deposit.amount) == (1, 2, 30000)
        assert deposit.dispute_state == DisputeState.clean
        assert repo.transaction_exists(1)
        assert repo.get_transactions_count() == 1

    @patch('repositories.logger')
    def test_duplicate_deposit_not_recorded(self, mock_logger, repo):
        """A reused tx id keeps the first deposit and logs the skip."""
        repo.record_deposit(1, 2, 30000)

        assert repo.record_deposit(1, 3, 10000) is False
        assert repo.get_deposit(1).client_id == 2
        assert repo.get_deposit(1).amount == 30000
        mock_logger.warning.assert_called_once()

    def test_mark_transaction_id_used(self, repo):
        """Claiming an id stores no deposit, and an id can only be claimed once."""
        assert repo.mark_transaction_id_used(7, 1) is True

        assert repo.transaction_exists(7)
        assert repo.get_deposit(7) is None
        assert repo.mark_transaction_id_used(7, 2) is False
        assert repo.get_transactions_count() == 1

    def test_deposit_after_claiming_its_id(self, repo):
        repo.mark_transaction_id_used(7, 1)

        assert repo.record_deposit(7, 1, 100) is True
        assert repo.get_deposit(7).amount == 100
        assert repo.mark_transaction_id_used(7, 1) is False

    def test_mark_dispute_state(self, repo):
        repo.record_deposit(1, 1, 100)
        repo.mark_dispute_state(1, DisputeState.disputed)

        assert repo.get_deposit(1).dispute_state == DisputeState.disputed

    def test_mark_dispute_state_unknown(self, repo):
        with pytest.raises(ValueError):
            repo.mark_dispute_state(1, DisputeState.disputed)

    def test_clear(self, repo):
        repo.get_or_create_account(1)
        repo.record_deposit(1, 1, 100)
        repo.clear()

        assert repo.get_accounts_count() == 0
        assert repo.get_transactions_count() == 0
        assert repo.get_deposit(1) is None


def test_factory_returns_fresh_ledger():
    first = get_ledger_repository()
    first.get_or_create_account(1)

    assert get_ledger_repository().get_accounts_count() == 0
