"""
Settlement model: a claimed payment between two trip members.
"""
from decimal import Decimal
from sqlalchemy import BigInteger, Column, String, Text, ForeignKey, Integer, DateTime, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import relationship
from tripsettle.core.money import from_cents
from tripsettle.db.base import BaseModel
import enum


class SettlementStatus(str, enum.Enum):
    """Settlement status enumeration. CONFIRMED and DECLINED are terminal."""
    INITIATED = "initiated"
    CONFIRMED = "confirmed"
    DECLINED = "declined"


class PaymentMethod(str, enum.Enum):
    """Channel the payer says they used."""
    VENMO = "venmo"
    PAYPAL = "paypal"
    CASH = "cash"


class Settlement(BaseModel):
    """
    Settlement created by the payer and resolved by the payee.

    Only CONFIRMED rows count toward balances.
    """
    __tablename__ = "settlements"

    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    payer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    payee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    payment_method = Column(SQLEnum(PaymentMethod), nullable=True)
    payment_link = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(SQLEnum(SettlementStatus), default=SettlementStatus.INITIATED, nullable=False, index=True)
    initiated_at = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    confirmed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    trip = relationship("Trip", back_populates="settlements")
    payer = relationship("User", foreign_keys=[payer_id])
    payee = relationship("User", foreign_keys=[payee_id])

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_settlement_positive_amount"),
        CheckConstraint("payer_id <> payee_id", name="ck_settlement_distinct_parties"),
    )

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)

    def __repr__(self):
        return f"<Settlement(id={self.id}, status='{self.status.value}', amount_cents={self.amount_cents})>"
