from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set
import structlog

from models import Account, DisputeState, TransactionRecord

logger = structlog.get_logger()


class LedgerRepository(ABC):
    @abstractmethod
    def get_or_create_account(self, client_id: int) -> Account:
        """Get the client's account, opening a zeroed unlocked one on first use."""
        pass

    @abstractmethod
    def get_account(self, client_id: int) -> Optional[Account]:
        """Get account. Returns None if the client has no account."""
        pass

    @abstractmethod
    def record_deposit(self, tx_id: int, client_id: int, amount: int) -> bool:
        """Store a deposit. Returns False, storing nothing, if a deposit with tx_id exists."""
        pass

    @abstractmethod
    def mark_transaction_id_used(self, tx_id: int, client_id: int) -> bool:
        """Claim tx_id for a deposit or withdrawal. Returns False if it was already claimed."""
        pass

    @abstractmethod
    def transaction_exists(self, tx_id: int) -> bool:
        """Check if a deposit or withdrawal already used tx_id."""
        pass

    @abstractmethod
    def get_deposit(self, tx_id: int) -> Optional[TransactionRecord]:
        """Get stored deposit. Returns None if tx_id is not a known deposit."""
        pass

    @abstractmethod
    def mark_dispute_state(self, tx_id: int, new_state: DisputeState) -> None:
        """Move a stored deposit to a new dispute state."""
        pass

    @abstractmethod
    def list_accounts(self) -> List[Account]:
        """Get all accounts ordered by client id."""
        pass

    @abstractmethod
    def get_accounts_count(self) -> int:
        """Get total number of accounts."""
        pass

    @abstractmethod
    def get_transactions_count(self) -> int:
        """Get total number of transaction ids consumed by deposits and withdrawals."""
        pass


class InMemoryLedgerRepository(LedgerRepository):
    def __init__(self):
        self.accounts: Dict[int, Account] = {}
        self.deposits: Dict[int, TransactionRecord] = {}
        self.transaction_ids: Set[int] = set()

    def get_or_create_account(self, client_id: int) -> Account:
        account = self.accounts.get(client_id)
        if account is None:
            account = Account(client_id=client_id)
            self.accounts[client_id] = account
            logger.debug("Account opened", client_id=client_id)
        return account

    def get_account(self, client_id: int) -> Optional[Account]:
        return self.accounts.get(client_id)

    def record_deposit(self, tx_id: int, client_id: int, amount: int) -> bool:
        if tx_id in self.deposits:
            logger.warning(
                "Deposit not recorded, deposit already exists",
                tx_id=tx_id,
                client_id=client_id
            )
            return False
        self.deposits[tx_id] = TransactionRecord(tx_id=tx_id, client_id=client_id, amount=amount)
        self.transaction_ids.add(tx_id)
        return True

    def mark_transaction_id_used(self, tx_id: int, client_id: int) -> bool:
        if tx_id in self.transaction_ids:
            logger.debug(
                "Transaction id already used",
                tx_id=tx_id,
                client_id=client_id
            )
            return False
        self.transaction_ids.add(tx_id)
        return True

    def transaction_exists(self, tx_id: int) -> bool:
        return tx_id in self.transaction_ids

    def get_deposit(self, tx_id: int) -> Optional[TransactionRecord]:
        return self.deposits.get(tx_id)

    def mark_dispute_state(self, tx_id: int, new_state: DisputeState) -> None:
        if tx_id not in self.deposits:
            raise ValueError(f"Deposit {tx_id} does not exist")
        self.deposits[tx_id].dispute_state = new_state

    def list_accounts(self) -> List[Account]:
        return [self.accounts[client_id] for client_id in sorted(self.accounts)]

    def get_accounts_count(self) -> int:
        return len(self.accounts)

    def get_transactions_count(self) -> int:
        return len(self.transaction_ids)

    def clear(self) -> None:
        """Drop all accounts and transactions (for testing)."""
        self.accounts.clear()
        self.deposits.clear()
        self.transaction_ids.clear()


# Factory function for dependency injection
def get_ledger_repository() -> LedgerRepository:
    return InMemoryLedgerRepository()
