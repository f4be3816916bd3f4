"""
Settlement workflow: payer claims a payment, payee confirms or declines it.

    INITIATED --confirm--> CONFIRMED
    INITIATED --decline--> DECLINED

Both end states are terminal. Only the payee may act on a settlement, so a
payer can never erase a debt just by claiming to have paid it. Confirmation
is what makes a settlement count in the ledger; nothing else writes to the
ledger from here.
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union
import enum
import logging
from sqlalchemy import update
from sqlalchemy.orm import Session
from tripsettle.core.config import settings
from tripsettle.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from tripsettle.core.money import MAX_AMOUNT_CENTS, format_cents, to_cents
from tripsettle.models.settlement import PaymentMethod, Settlement, SettlementStatus
from tripsettle.models.user import User
from tripsettle.services import expense_store
from tripsettle.services.payment_methods import generate_settlement_note, resolve_settlement_options

logger = logging.getLogger(__name__)


class SettlementAction(str, enum.Enum):
    CONFIRM = "confirm"
    DECLINE = "decline"


_TRANSITIONS = {
    (SettlementStatus.INITIATED, SettlementAction.CONFIRM): SettlementStatus.CONFIRMED,
    (SettlementStatus.INITIATED, SettlementAction.DECLINE): SettlementStatus.DECLINED,
}


def next_status(settlement: Settlement, action: SettlementAction, acting_user_id: int) -> Optional[SettlementStatus]:
    """
    Decide where ``action`` by ``acting_user_id`` takes the settlement.

    Returns the new status, or None when the settlement is already terminal
    and the action is a no-op.

    Raises:
        AuthorizationError: the acting user is not the payee.
    """
    if acting_user_id != settlement.payee_id:
        raise AuthorizationError(f"Only the payee may {action.value} this settlement")

    return _TRANSITIONS.get((settlement.status, action))


def get_settlement(settlement_id: int, db: Session) -> Settlement:
    settlement = db.query(Settlement).filter(Settlement.id == settlement_id).first()
    if not settlement:
        raise NotFoundError(f"Settlement {settlement_id} not found")
    return settlement


def _parse_amount(amount: Union[Decimal, int, float, str]) -> int:
    try:
        amount_cents = to_cents(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid settlement amount: {amount}")
    if amount_cents <= 0:
        raise ValidationError("Settlement amount must be greater than zero")
    if amount_cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"Settlement amount may not exceed {format_cents(MAX_AMOUNT_CENTS)}")
    return amount_cents


def _parse_method(payment_method) -> Optional[PaymentMethod]:
    if payment_method is None or isinstance(payment_method, PaymentMethod):
        return payment_method
    try:
        return PaymentMethod(payment_method)
    except ValueError:
        raise ValidationError(f"Unsupported payment method: {payment_method}")


def initiate_settlement(
    trip_id: int,
    payer_id: int,
    payee_id: int,
    amount: Union[Decimal, int, float, str],
    payment_method: Optional[Union[PaymentMethod, str]] = None,
    notes: Optional[str] = None,
    *,
    db: Session
) -> Settlement:
    """
    Record that ``payer_id`` says they paid ``payee_id``.

    The settlement starts out INITIATED and has no effect on balances until
    the payee confirms it. All checks run before anything is written.
    """
    if payer_id == payee_id:
        raise ValidationError("You cannot settle a payment with yourself")
    amount_cents = _parse_amount(amount)
    method = _parse_method(payment_method)

    trip = expense_store.get_trip(trip_id, db)
    if not trip:
        raise NotFoundError(f"Trip {trip_id} not found")
    if not expense_store.is_member(trip_id, payer_id, db):
        raise ValidationError("Payer is not a member of this trip")
    if not expense_store.is_member(trip_id, payee_id, db):
        raise ValidationError("Payee is not a member of this trip")

    payer = db.query(User).filter(User.id == payer_id).first()
    payee = db.query(User).filter(User.id == payee_id).first()
    currency = (trip.base_currency or settings.DEFAULT_CURRENCY).upper()

    payment_link = None
    if method and method != PaymentMethod.CASH:
        note = generate_settlement_note(payer.display_name, trip.name)
        options = resolve_settlement_options(payee, amount_cents, note, currency)
        selected = next((option for option in options if option.method == method), None)
        if selected:
            payment_link = selected.payment_link
        else:
            logger.info(f"Payee {payee_id} has no {method.value} account; settlement saved without a link")

    settlement = Settlement(
        trip_id=trip_id,
        payer_id=payer_id,
        payee_id=payee_id,
        amount_cents=amount_cents,
        currency=currency,
        payment_method=method,
        payment_link=payment_link,
        notes=notes,
        status=SettlementStatus.INITIATED,
        initiated_at=datetime.now(timezone.utc),
    )
    db.add(settlement)
    db.commit()
    db.refresh(settlement)

    logger.info(
        f"Settlement {settlement.id} initiated: trip {trip_id}, {payer_id} -> {payee_id}, "
        f"{amount_cents} cents via {method.value if method else 'unspecified'}"
    )
    return settlement


def _resolve(settlement_id: int, action: SettlementAction, acting_user_id: int, db: Session) -> Settlement:
    settlement = get_settlement(settlement_id, db)
    target = next_status(settlement, action, acting_user_id)
    if target is None:
        logger.info(
            f"Settlement {settlement_id} is already {settlement.status.value}; {action.value} is a no-op"
        )
        return settlement

    now = datetime.now(timezone.utc)
    values = {"status": target}
    if target == SettlementStatus.CONFIRMED:
        values.update(confirmed_at=now, confirmed_by=acting_user_id)
    else:
        values.update(declined_at=now)

    # Compare-and-set: only one caller can move the row out of INITIATED
    result = db.execute(
        update(Settlement)
        .where(Settlement.id == settlement_id, Settlement.status == SettlementStatus.INITIATED)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(settlement)

    if result.rowcount == 0:
        logger.warning(
            f"Settlement {settlement_id} was resolved concurrently; "
            f"{action.value} found it {settlement.status.value}"
        )
    else:
        logger.info(f"Settlement {settlement_id} {target.value} by user {acting_user_id}")

    return settlement


def confirm_settlement(settlement_id: int, acting_user_id: int, db: Session) -> Settlement:
    """Payee confirms the money arrived. Idempotent."""
    return _resolve(settlement_id, SettlementAction.CONFIRM, acting_user_id, db)


def decline_settlement(settlement_id: int, acting_user_id: int, db: Session) -> Settlement:
    """Payee says the money never arrived. Idempotent; the payer may initiate again."""
    return _resolve(settlement_id, SettlementAction.DECLINE, acting_user_id, db)


def list_pending_for(user_id: int, db: Session) -> List[Settlement]:
    """Confirmation inbox: settlements waiting on this user, newest first."""
    return db.query(Settlement).filter(
        Settlement.payee_id == user_id,
        Settlement.status == SettlementStatus.INITIATED
    ).order_by(Settlement.initiated_at.desc(), Settlement.id.desc()).all()


def list_trip_settlements(trip_id: int, db: Session) -> List[Settlement]:
    return db.query(Settlement).filter(
        Settlement.trip_id == trip_id
    ).order_by(Settlement.initiated_at.desc(), Settlement.id.desc()).all()
