"""
Balance ledger: per-member net positions derived from expense records.

Balances are recomputed on every call from the expense store and the
confirmed settlements; nothing here is cached or persisted.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List
import logging
from sqlalchemy.orm import Session
from tripsettle.core.exceptions import DataIntegrityError, NotFoundError
from tripsettle.core.money import to_cents
from tripsettle.models.settlement import SettlementStatus
from tripsettle.services import expense_store

logger = logging.getLogger(__name__)


@dataclass
class UserBalance:
    """A member's position in integer cents. Positive means they are owed money."""
    user_id: int
    name: str
    total_paid_out: int
    total_owed: int

    @property
    def net_balance(self) -> int:
        return self.total_paid_out - self.total_owed


def derive_balances(members, expenses, splits, settlements=()) -> List[UserBalance]:
    """
    Compute balances from raw records.

    ``members`` are users (``id`` and ``display_name``), ``expenses`` and
    ``splits`` are the trip's expense rows and ``settlements`` may contain
    settlements in any status; only confirmed ones are applied.

    A split already marked paid was reimbursed straight to the expense payer,
    so it is dropped from both the participant's debt and the payer's credit.
    A confirmed settlement counts as money paid out by its payer and money
    owed back by its payee.

    Raises:
        DataIntegrityError: a record references an unknown expense or a user
            outside the roster.
    """
    roster = {member.id: member for member in members}
    expense_by_id = {expense.id: expense for expense in expenses}
    paid_out: Dict[int, int] = {user_id: 0 for user_id in roster}
    owed: Dict[int, int] = {user_id: 0 for user_id in roster}

    for expense in expenses:
        if expense.payer_id not in roster:
            raise _integrity_error(
                f"Expense {expense.id} was paid by user {expense.payer_id} who is not a trip member"
            )
        paid_out[expense.payer_id] += to_cents(expense.amount)

    for split in splits:
        expense = expense_by_id.get(split.expense_id)
        if expense is None:
            raise _integrity_error(
                f"Split {split.id} references expense {split.expense_id} which does not exist"
            )
        if split.user_id not in roster:
            raise _integrity_error(
                f"Split {split.id} belongs to user {split.user_id} who is not a trip member"
            )
        share = to_cents(split.owed_amount)
        if split.is_paid:
            paid_out[expense.payer_id] -= share
        else:
            owed[split.user_id] += share

    for settlement in settlements:
        if settlement.status != SettlementStatus.CONFIRMED:
            continue
        for party in (settlement.payer_id, settlement.payee_id):
            if party not in roster:
                raise _integrity_error(
                    f"Settlement {settlement.id} involves user {party} who is not a trip member"
                )
        paid_out[settlement.payer_id] += settlement.amount_cents
        owed[settlement.payee_id] += settlement.amount_cents

    return [
        UserBalance(
            user_id=user_id,
            name=member.display_name,
            total_paid_out=paid_out[user_id],
            total_owed=owed[user_id],
        )
        for user_id, member in roster.items()
    ]


def compute_balances(trip_id: int, db: Session) -> List[UserBalance]:
    """Load the trip's records from the expense store and derive balances."""
    if expense_store.get_trip(trip_id, db) is None:
        raise NotFoundError(f"Trip {trip_id} not found")

    balances = derive_balances(
        members=expense_store.list_members(trip_id, db),
        expenses=expense_store.list_expenses(trip_id, db),
        splits=expense_store.list_splits(trip_id, db),
        settlements=expense_store.list_confirmed_settlements(trip_id, db),
    )
    logger.debug(f"Balances for trip {trip_id}: {[(b.user_id, b.net_balance) for b in balances]}")

    # Splits of an expense should add up to its amount; the expense subsystem owns that rule.
    drift = total_net(balances)
    if drift != 0:
        logger.warning(f"Balances for trip {trip_id} do not sum to zero (off by {drift} cents)")

    return balances


def total_net(balances: Iterable[UserBalance]) -> int:
    """Sum of net balances; zero for any consistent trip."""
    return sum(balance.net_balance for balance in balances)


def _integrity_error(message: str) -> DataIntegrityError:
    logger.error(message)
    return DataIntegrityError(message)
