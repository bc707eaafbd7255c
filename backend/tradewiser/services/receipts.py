"""
Receipt identifiers, hashes and valuation helpers
"""

import hashlib
import secrets
import string
import time
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from tradewiser.core.config import settings

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_receipt_number() -> str:
    """WR + hex millisecond timestamp + 4 random digits"""
    return f"WR{int(time.time() * 1000):x}".upper() + f"{secrets.randbelow(10000):04d}"


def generate_ewr_number(commodity_id: int, issued: Optional[datetime] = None) -> str:
    issued = issued or datetime.utcnow()
    return f"eWR-{issued.strftime('%Y%m%d%H%M%S')}-{commodity_id}"


def generate_verification_code(length: int = 8) -> str:
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


def generate_blockchain_hash(receipt_number: str, owner_id: Optional[int], quantity, timestamp: Optional[datetime] = None) -> str:
    """SHA-256 fingerprint of the receipt's identifying fields"""
    timestamp = timestamp or datetime.utcnow()
    payload = f"{receipt_number}|{owner_id}|{quantity}|{timestamp.isoformat()}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def generate_transaction_hash(*parts) -> str:
    """0x-prefixed SHA-256 over the given parts and the current time"""
    payload = "|".join(str(p) for p in parts) + f"|{time.time_ns()}"
    return "0x" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def default_valuation(quantity_mt) -> Decimal:
    """quantity (MT) * 1000 kg * price per kg"""
    value = Decimal(str(quantity_mt)) * 1000 * Decimal(str(settings.DEFAULT_PRICE_PER_KG))
    return value.quantize(Decimal("0.01"))


def default_expiry(issued: Optional[datetime] = None) -> datetime:
    issued = issued or datetime.utcnow()
    return issued + timedelta(days=settings.RECEIPT_VALIDITY_DAYS)


def verification_url(code: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/receipts/verify/{code}"
