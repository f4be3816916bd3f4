"""
Pydantic schemas for balances, recommendations and settlements.

Amounts are cents inside the services; these schemas expose them as
2-decimal ``Decimal`` values.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from tripsettle.core.money import from_cents
from tripsettle.models.settlement import PaymentMethod, SettlementStatus


class UserBalanceResponse(BaseModel):
    """Schema for one member's balance. Positive net_balance means they are owed money."""
    user_id: int
    name: str
    total_paid_out: Decimal
    total_owed: Decimal
    net_balance: Decimal

    @classmethod
    def from_balance(cls, balance) -> "UserBalanceResponse":
        return cls(
            user_id=balance.user_id,
            name=balance.name,
            total_paid_out=from_cents(balance.total_paid_out),
            total_owed=from_cents(balance.total_owed),
            net_balance=from_cents(balance.net_balance),
        )


class OptimizedTransactionResponse(BaseModel):
    """Schema for a single recommended payment."""
    from_user_id: int
    from_user_name: str
    to_user_id: int
    to_user_name: str
    amount: Decimal

    @classmethod
    def from_transaction(cls, transaction) -> "OptimizedTransactionResponse":
        return cls(
            from_user_id=transaction.from_user_id,
            from_user_name=transaction.from_user_name,
            to_user_id=transaction.to_user_id,
            to_user_name=transaction.to_user_name,
            amount=from_cents(transaction.amount),
        )


class SettlementStatsResponse(BaseModel):
    total_transactions: int
    total_amount: Decimal
    users_involved: int
    average_transaction_amount: Decimal


class RecommendedSettlementsResponse(BaseModel):
    """Schema for the optimized settlement plan of a trip."""
    transactions: List[OptimizedTransactionResponse]
    stats: SettlementStatsResponse
    is_valid: bool
    original_balances: List[UserBalanceResponse]


class SettlementOptionResponse(BaseModel):
    """Schema for one way of paying the payee."""
    method: PaymentMethod
    display_name: str
    payment_link: Optional[str] = None
    available: bool = True

    class Config:
        from_attributes = True


class SettlementInitiate(BaseModel):
    """Schema for initiating a settlement. The payer is the current user."""
    payee_id: int
    amount: Decimal = Field(..., max_digits=15, decimal_places=2)
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class SettlementResponse(BaseModel):
    """Schema for settlement response."""
    id: int
    trip_id: int
    payer_id: int
    payee_id: int
    amount: Decimal
    currency: str
    payment_method: Optional[PaymentMethod] = None
    payment_link: Optional[str] = None
    notes: Optional[str] = None
    status: SettlementStatus
    initiated_at: datetime
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[int] = None
    declined_at: Optional[datetime] = None

    class Config:
        from_attributes = True
