"""
Settlement optimizer: the fewest payments that bring every balance to zero.

Greedy debt netting. Each round pairs the member who owes the most with the
member who is owed the most and settles the smaller of the two amounts, so
every round zeroes at least one of them. For n members with a non-zero
balance that gives at most n - 1 payments.

All amounts are integer cents.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Sequence
import logging
from tripsettle.core.money import DUST_CENTS
from tripsettle.services.ledger_service import UserBalance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptimizedTransaction:
    """A single recommended payment."""
    from_user_id: int
    from_user_name: str
    to_user_id: int
    to_user_name: str
    amount: int


@dataclass(frozen=True)
class SettlementStats:
    total_transactions: int
    total_amount: int
    users_involved: int
    average_transaction_amount: int


@dataclass
class _Position:
    user_id: int
    name: str
    net: int


def optimize(balances: Sequence[UserBalance]) -> List[OptimizedTransaction]:
    """
    Calculate the minimum set of payments needed to settle all debts.

    Ties between equal balances go to whichever member comes first in
    ``balances``. The input is never modified.
    """
    transactions: List[OptimizedTransaction] = []

    # Ignore balances within a cent of zero, work on copies
    working = [
        _Position(balance.user_id, balance.name, balance.net_balance)
        for balance in balances
        if abs(balance.net_balance) > DUST_CENTS
    ]

    while any(abs(position.net) > DUST_CENTS for position in working):
        # min/max return the first of several equal candidates
        debtor = min(working, key=lambda p: p.net)
        creditor = max(working, key=lambda p: p.net)

        if debtor.net >= 0 or creditor.net <= 0:
            break

        # A single cent is still paid here when a larger balance depends on it
        amount = min(-debtor.net, creditor.net)

        transactions.append(OptimizedTransaction(
            from_user_id=debtor.user_id,
            from_user_name=debtor.name,
            to_user_id=creditor.user_id,
            to_user_name=creditor.name,
            amount=amount,
        ))
        debtor.net += amount
        creditor.net -= amount

    return transactions


def apply_transactions(balances: Sequence[UserBalance],
                       transactions: Sequence[OptimizedTransaction]) -> Dict[int, int]:
    """Net balance per user after every transaction has been paid."""
    remaining = {balance.user_id: balance.net_balance for balance in balances}
    for transaction in transactions:
        remaining[transaction.from_user_id] = remaining.get(transaction.from_user_id, 0) + transaction.amount
        remaining[transaction.to_user_id] = remaining.get(transaction.to_user_id, 0) - transaction.amount
    return remaining


def validate_settlement_plan(balances: Sequence[UserBalance],
                             transactions: Sequence[OptimizedTransaction]) -> bool:
    """Check that paying the plan leaves everyone within a cent of zero."""
    for user_id, remaining in apply_transactions(balances, transactions).items():
        if abs(remaining) > DUST_CENTS:
            logger.warning(
                f"Settlement validation failed: user {user_id} has remaining balance of {remaining} cents"
            )
            return False
    return True


def recommendations_for_user(balances: Sequence[UserBalance], user_id: int) -> List[OptimizedTransaction]:
    """The full plan, restricted to payments the user sends or receives."""
    return [
        transaction for transaction in optimize(balances)
        if transaction.from_user_id == user_id or transaction.to_user_id == user_id
    ]


def settlement_stats(transactions: Sequence[OptimizedTransaction]) -> SettlementStats:
    total_amount = sum(transaction.amount for transaction in transactions)
    users = set()
    for transaction in transactions:
        users.add(transaction.from_user_id)
        users.add(transaction.to_user_id)

    average = 0
    if transactions:
        average = int((Decimal(total_amount) / len(transactions)).quantize(Decimal(1), rounding=ROUND_HALF_UP))

    return SettlementStats(
        total_transactions=len(transactions),
        total_amount=total_amount,
        users_involved=len(users),
        average_transaction_amount=average,
    )
