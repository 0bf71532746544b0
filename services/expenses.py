"""
Expense service.

Owner-only CRUD. Every write invalidates the owner's list cache entry
before returning; list reads go through the cache.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from core.auth import Identity
from core.cache import CacheStore, expense_cache_key
from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from core.pagination import ListParams
from core.permissions import can_manage_expense
from models import EXPENSE_CATEGORIES, Expense, utcnow
from schemas import ExpenseCreate, ExpenseResponse, ExpenseUpdate, to_payload

logger = logging.getLogger(__name__)

DEFAULT_SORT = "date"
SORTABLE = {
    "date": Expense.date,
    "price": Expense.price,
    "item": Expense.item,
    "category": Expense.category,
    "createdAt": Expense.created_at,
}


def _normalize_item(item: Optional[str]) -> str:
    return (item or "").strip().lower()


def _normalize_category(category: str) -> str:
    normalized = category.strip().lower()
    if normalized not in EXPENSE_CATEGORIES:
        raise ValidationError(
            f"Category must be one of: {', '.join(EXPENSE_CATEGORIES)}", field="category"
        )
    return normalized


def _check_price(price: float) -> float:
    if not math.isfinite(price) or price < 0:
        raise ValidationError("Price must be a non-negative number", field="price")
    return price


def _build_expense(identity: Identity, data: ExpenseCreate, missing_message: str) -> Expense:
    item = _normalize_item(data.item)
    if not item or data.price is None or not (data.category or "").strip():
        raise ValidationError(missing_message)

    return Expense(
        user_id=identity.id,
        item=item,
        price=_check_price(data.price),
        category=_normalize_category(data.category),
        date=data.date or utcnow(),
    )


def create_expenses(
    db: Session,
    cache: CacheStore,
    identity: Identity,
    entries: List[ExpenseCreate],
    bulk: bool = False,
) -> List[Expense]:
    """
    Create one or many expenses. Every entry is validated before anything
    is written, and the whole batch commits together.
    """
    if bulk and not entries:
        raise ValidationError("At least one expense is required")

    missing = (
        "All fields (item, price, category) are required for every expense"
        if bulk
        else "All fields (item, price, category) are required"
    )
    expenses = [_build_expense(identity, entry, missing) for entry in entries]

    db.add_all(expenses)
    db.commit()
    for expense in expenses:
        db.refresh(expense)

    cache.invalidate(expense_cache_key(identity.id))
    logger.info(f"Created {len(expenses)} expense(s) for {identity.id}")
    return expenses


def list_expenses(
    db: Session,
    cache: CacheStore,
    identity: Identity,
    params: ListParams,
) -> Tuple[List[dict], bool]:
    """Return (expenses, served_from_cache) for the caller."""

    def load() -> List[dict]:
        query = db.query(Expense).filter(Expense.user_id == identity.id)
        query = params.apply(query, SORTABLE, DEFAULT_SORT, tiebreak=Expense.id)
        return [to_payload(ExpenseResponse, expense) for expense in query.all()]

    return cache.read_through(
        expense_cache_key(identity.id), params.variant(DEFAULT_SORT), load
    )


def _get_owned(db: Session, identity: Identity, expense_id: UUID) -> Expense:
    expense = db.get(Expense, expense_id)
    if not expense:
        raise NotFoundError("Expense not found")
    if not can_manage_expense(identity, expense):
        raise ForbiddenError("You can only modify your own expenses")
    return expense


def update_expense(
    db: Session,
    cache: CacheStore,
    identity: Identity,
    expense_id: UUID,
    changes: ExpenseUpdate,
) -> Expense:
    """Apply whichever of item/price/category/date are present."""
    if changes.item is None and changes.price is None and changes.category is None and changes.date is None:
        raise ValidationError(
            "At least one field (item, price, category, or date) is required to update"
        )

    # Validate everything before touching the row
    item = _normalize_item(changes.item) if changes.item is not None else None
    if changes.item is not None and not item:
        raise ValidationError("Item cannot be empty", field="item")
    price = _check_price(changes.price) if changes.price is not None else None
    category = _normalize_category(changes.category) if changes.category is not None else None

    expense = _get_owned(db, identity, expense_id)
    if item is not None:
        expense.item = item
    if price is not None:
        expense.price = price
    if category is not None:
        expense.category = category
    if changes.date is not None:
        expense.date = changes.date

    db.commit()
    db.refresh(expense)

    cache.invalidate(expense_cache_key(expense.user_id))
    return expense


def delete_expense(db: Session, cache: CacheStore, identity: Identity, expense_id: UUID) -> None:
    expense = _get_owned(db, identity, expense_id)
    owner_id = expense.user_id
    db.delete(expense)
    db.commit()

    cache.invalidate(expense_cache_key(owner_id))
