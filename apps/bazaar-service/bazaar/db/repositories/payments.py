"""
Payment transaction repository functions.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from bazaar.db import models


def create_transaction(
    db: Session,
    *,
    user_id: int,
    payment_type: str,
    payment_gateway: str,
    amount: float,
    transaction_id: str,
    related_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> models.PaymentTransaction:
    txn = models.PaymentTransaction(
        user_id=user_id,
        payment_type=payment_type,
        payment_gateway=payment_gateway,
        amount=amount,
        transaction_id=transaction_id,
        related_id=related_id,
        status="pending",
        metadata_json=metadata or {},
    )
    db.add(txn)
    db.commit()
    db.refresh(txn)
    return txn


def get_transaction(db: Session, txn_id: int) -> Optional[models.PaymentTransaction]:
    return db.query(models.PaymentTransaction).filter(models.PaymentTransaction.id == txn_id).first()


def get_by_order_id(db: Session, order_id: str, *, for_update: bool = False) -> Optional[models.PaymentTransaction]:
    query = db.query(models.PaymentTransaction).filter(models.PaymentTransaction.transaction_id == order_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def merge_metadata(db: Session, txn: models.PaymentTransaction, extra: Dict[str, Any]) -> models.PaymentTransaction:
    # Reassign so SQLAlchemy notices the JSON change
    merged = dict(txn.metadata_json or {})
    merged.update(extra)
    txn.metadata_json = merged
    db.commit()
    db.refresh(txn)
    return txn


def update_status(db: Session, txn: models.PaymentTransaction, status: str, **fields) -> models.PaymentTransaction:
    txn.status = status
    for key, value in fields.items():
        setattr(txn, key, value)
    db.commit()
    db.refresh(txn)
    return txn


def mark_verified_if_pending(db: Session, txn: models.PaymentTransaction, **fields) -> bool:
    """Conditional pending -> verified transition; False when another request already moved it."""
    values = {models.PaymentTransaction.status: "verified"}
    for key, value in fields.items():
        values[getattr(models.PaymentTransaction, key)] = value
    claimed = (
        db.query(models.PaymentTransaction)
        .filter(models.PaymentTransaction.id == txn.id, models.PaymentTransaction.status == "pending")
        .update(values, synchronize_session=False)
    )
    db.commit()
    db.refresh(txn)
    return claimed == 1


def list_user_transactions(db: Session, user_id: int, *, skip: int = 0, limit: int = 20) -> Tuple[List[models.PaymentTransaction], int]:
    query = db.query(models.PaymentTransaction).filter(models.PaymentTransaction.user_id == user_id)
    total = query.count()
    items = (
        query.order_by(models.PaymentTransaction.created_at.desc(), models.PaymentTransaction.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return items, total
