"""
Payment method resolver.

Turns a payee's stored payment identifiers into the list of channels a payer
can settle through, with ready-made deep links. Pure string templating; no
network calls.
"""
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote
import re
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from tripsettle.core.config import settings
from tripsettle.core.money import format_cents
from tripsettle.models.settlement import PaymentMethod

# Venmo handles: letters, digits, hyphens and underscores.
_VENMO_USERNAME = re.compile(r"^[A-Za-z0-9_-]{1,30}$")
_EMAIL = TypeAdapter(EmailStr)

# Same set of unescaped characters as JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass
class PaymentMethodInfo:
    has_venmo: bool
    has_paypal: bool
    venmo_username: Optional[str] = None
    paypal_email: Optional[str] = None


@dataclass
class SettlementOption:
    method: PaymentMethod
    display_name: str
    payment_link: Optional[str] = None
    available: bool = True


def _clean_venmo_username(raw: Optional[str]) -> Optional[str]:
    if not raw or not raw.strip():
        return None
    username = raw.strip()
    if username.startswith("@"):
        username = username[1:]
    return username if _VENMO_USERNAME.match(username) else None


def _clean_paypal_email(raw: Optional[str]) -> Optional[str]:
    if not raw or not raw.strip():
        return None
    try:
        return str(_EMAIL.validate_python(raw.strip()))
    except PydanticValidationError:
        return None


def detect_payment_methods(user) -> PaymentMethodInfo:
    """Report which of the user's stored identifiers can produce a link."""
    venmo = _clean_venmo_username(user.venmo_username)
    paypal = _clean_paypal_email(user.paypal_email)
    return PaymentMethodInfo(
        has_venmo=venmo is not None,
        has_paypal=paypal is not None,
        venmo_username=venmo,
        paypal_email=paypal,
    )


def generate_venmo_payment_link(username: str, amount_cents: int, note: str) -> str:
    clean_username = username[1:] if username.startswith("@") else username
    encoded_note = quote(note, safe=_URI_COMPONENT_SAFE)
    return (
        f"{settings.VENMO_BASE_URL}/{clean_username}"
        f"?txn=pay&amount={format_cents(amount_cents)}&note={encoded_note}"
    )


def generate_paypal_payment_link(email: str, amount_cents: int, note: str, currency: str = "USD") -> str:
    """
    Build a PayPal "buy now" link addressed to the payee's email.

    PayPal.me wants a handle rather than an email, so this uses the legacy
    ``business=<email>`` form. Known to be fragile; kept because only the
    email is stored.
    """
    encoded_note = quote(note, safe=_URI_COMPONENT_SAFE)
    encoded_email = quote(email, safe=_URI_COMPONENT_SAFE)
    return (
        f"{settings.PAYPAL_BASE_URL}?cmd=_xclick&business={encoded_email}"
        f"&amount={format_cents(amount_cents)}&item_name={encoded_note}"
        f"&currency_code={quote(currency.upper())}"
    )


def generate_settlement_note(payer_name: str, trip_name: str) -> str:
    return f"Trip settlement: {trip_name} - from {payer_name}"


def resolve_settlement_options(payee, amount_cents: int, note: str, currency: str = "USD") -> List[SettlementOption]:
    """
    Ranked settlement channels for paying ``payee``.

    Venmo and PayPal appear only when the payee has a usable identifier.
    Cash is always last and always available.
    """
    methods = detect_payment_methods(payee)
    options: List[SettlementOption] = []

    if methods.has_venmo:
        options.append(SettlementOption(
            method=PaymentMethod.VENMO,
            display_name="Venmo",
            payment_link=generate_venmo_payment_link(methods.venmo_username, amount_cents, note),
        ))

    if methods.has_paypal:
        options.append(SettlementOption(
            method=PaymentMethod.PAYPAL,
            display_name="PayPal",
            payment_link=generate_paypal_payment_link(methods.paypal_email, amount_cents, note, currency),
        ))

    options.append(SettlementOption(
        method=PaymentMethod.CASH,
        display_name="Settle in Cash",
    ))

    return options
