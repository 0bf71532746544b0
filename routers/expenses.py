"""
Expense endpoints. Owner-only; list reads are cached per owner.
"""
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session
from typing import List, Union
from uuid import UUID

from core.auth import Identity, get_current_identity
from core.cache import CacheStore, get_cache
from core.database import get_db
from core.exceptions import NotFoundError
from core.pagination import ListParams, list_params
from schemas import ExpenseCreate, ExpenseResponse, ExpenseUpdate, to_payload
from services import expenses as expense_service

router = APIRouter(prefix="/api/v1/expense", tags=["expense"])


@router.post("")
def create_expense(
    data: Union[List[ExpenseCreate], ExpenseCreate] = Body(...),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    """Create one expense, or a batch when the body is an array."""
    if isinstance(data, list):
        created = expense_service.create_expenses(db, cache, identity, data, bulk=True)
        return {
            "success": True,
            "message": f"{len(created)} expenses added successfully",
            "expenses": [to_payload(ExpenseResponse, expense) for expense in created],
        }

    created = expense_service.create_expenses(db, cache, identity, [data])
    return {
        "success": True,
        "message": "Expense added successfully",
        "expense": to_payload(ExpenseResponse, created[0]),
    }


@router.get("")
def list_expenses(
    params: ListParams = Depends(list_params),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    expenses, from_cache = expense_service.list_expenses(db, cache, identity, params)
    if not expenses:
        raise NotFoundError("No expenses found for this user")

    message = (
        "Expenses retrieved from cache successfully"
        if from_cache
        else "Expenses retrieved successfully"
    )
    return {
        "success": True,
        "message": message,
        "userId": str(identity.id),
        "totalExpense": len(expenses),
        "expenseData": expenses,
    }


@router.put("/{expense_id}")
def update_expense(
    expense_id: UUID,
    changes: ExpenseUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    expense = expense_service.update_expense(db, cache, identity, expense_id, changes)
    return {
        "success": True,
        "message": "Expense updated successfully",
        "expense": to_payload(ExpenseResponse, expense),
    }


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: UUID,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    expense_service.delete_expense(db, cache, identity, expense_id)
    return {"success": True, "message": "Expense deleted successfully"}
