"""
Settlement routes: balances, recommended payments and the confirmation workflow.
"""
import logging
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List
from tripsettle.db.session import get_db
from tripsettle.core.config import settings
from tripsettle.core.exceptions import AuthorizationError
from tripsettle.core.money import MAX_AMOUNT, from_cents, to_cents
from tripsettle.models.user import User
from tripsettle.schemas.settlement import (
    UserBalanceResponse, OptimizedTransactionResponse, RecommendedSettlementsResponse,
    SettlementStatsResponse, SettlementOptionResponse, SettlementInitiate, SettlementResponse
)
from tripsettle.api.dependencies import get_current_user, check_trip_access, is_trip_creator
from tripsettle.services.ledger_service import compute_balances
from tripsettle.services import expense_store, settlement_optimizer, settlement_service
from tripsettle.services.payment_methods import generate_settlement_note, resolve_settlement_options

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.get("/pending", response_model=List[SettlementResponse])
async def get_pending_settlements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Settlements waiting for the current user to confirm, newest first."""
    return settlement_service.list_pending_for(current_user.id, db)


@router.get("/{trip_id}/balances", response_model=List[UserBalanceResponse])
async def get_balances(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get each member's net balance for a trip."""
    check_trip_access(trip_id, current_user.id, db)
    balances = compute_balances(trip_id, db)
    return [UserBalanceResponse.from_balance(b) for b in balances]


@router.get("/{trip_id}/recommended", response_model=RecommendedSettlementsResponse)
async def get_recommended_settlements(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the smallest set of payments that settles the whole trip."""
    check_trip_access(trip_id, current_user.id, db)
    balances = compute_balances(trip_id, db)

    transactions = settlement_optimizer.optimize(balances)
    is_valid = settlement_optimizer.validate_settlement_plan(balances, transactions)
    if not is_valid:
        logger.warning(f"Settlement plan validation failed for trip {trip_id}")

    stats = settlement_optimizer.settlement_stats(transactions)
    return RecommendedSettlementsResponse(
        transactions=[OptimizedTransactionResponse.from_transaction(t) for t in transactions],
        stats=SettlementStatsResponse(
            total_transactions=stats.total_transactions,
            total_amount=from_cents(stats.total_amount),
            users_involved=stats.users_involved,
            average_transaction_amount=from_cents(stats.average_transaction_amount),
        ),
        is_valid=is_valid,
        original_balances=[UserBalanceResponse.from_balance(b) for b in balances],
    )


@router.get("/{trip_id}/recommended/{user_id}", response_model=List[OptimizedTransactionResponse])
async def get_user_recommendations(
    trip_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the recommended payments one member sends or receives."""
    check_trip_access(trip_id, current_user.id, db)
    if user_id != current_user.id and not is_trip_creator(trip_id, current_user.id, db):
        raise AuthorizationError("Only the trip creator may view another member's recommendations")

    balances = compute_balances(trip_id, db)
    transactions = settlement_optimizer.recommendations_for_user(balances, user_id)
    return [OptimizedTransactionResponse.from_transaction(t) for t in transactions]


@router.get("/{trip_id}/options/{payee_id}", response_model=List[SettlementOptionResponse])
async def get_settlement_options(
    trip_id: int,
    payee_id: int,
    amount: Decimal = Query(..., gt=0, le=MAX_AMOUNT),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the ways the current user can pay a member, with deep links."""
    trip = check_trip_access(trip_id, current_user.id, db)

    payee = db.query(User).filter(User.id == payee_id).first()
    if not payee or not expense_store.is_member(trip_id, payee_id, db):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payee not found"
        )

    note = generate_settlement_note(current_user.display_name, trip.name)
    currency = trip.base_currency or settings.DEFAULT_CURRENCY
    return resolve_settlement_options(payee, to_cents(amount), note, currency)


@router.get("/{trip_id}/history", response_model=List[SettlementResponse])
async def get_trip_settlements(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Every settlement recorded for a trip, newest first."""
    check_trip_access(trip_id, current_user.id, db)
    return settlement_service.list_trip_settlements(trip_id, db)


@router.post("/{trip_id}/initiate", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
async def initiate_settlement(
    trip_id: int,
    settlement_data: SettlementInitiate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record that the current user paid another member. Waits for the payee to confirm."""
    check_trip_access(trip_id, current_user.id, db)
    return settlement_service.initiate_settlement(
        trip_id=trip_id,
        payer_id=current_user.id,
        payee_id=settlement_data.payee_id,
        amount=settlement_data.amount,
        payment_method=settlement_data.payment_method,
        notes=settlement_data.notes,
        db=db
    )


@router.post("/{settlement_id}/confirm", response_model=SettlementResponse)
async def confirm_settlement(
    settlement_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Payee confirms the payment arrived."""
    return settlement_service.confirm_settlement(settlement_id, current_user.id, db)


@router.post("/{settlement_id}/decline", response_model=SettlementResponse)
async def decline_settlement(
    settlement_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Payee reports the payment never arrived."""
    return settlement_service.decline_settlement(settlement_id, current_user.id, db)
