"""
Payment endpoints for Khalti and eSewa.

Initiation creates a pending transaction and hands the browser off to the
gateway; the gateway redirects back to ``/payments/callback`` which verifies
the payment server-side and forwards the user to the frontend result page.
"""
import logging
from pathlib import Path
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.orm import Session

from bazaar.db import schemas
from bazaar.db.database import get_db
from bazaar.db.repositories import payments as repo_payments
from bazaar.api.deps import get_current_user_context
from bazaar.api.permissions import can_view_transaction
from bazaar.services import payment_service
from bazaar.services.payment_service import GATEWAY_ESEWA, PaymentError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)


@router.get("/gateways", response_model=List[schemas.Gateway])
def list_gateways_endpoint():
    return payment_service.list_gateways()


@router.post("/initiate", response_model=schemas.PaymentInitiateResponse)
def initiate_payment_endpoint(
    payload: schemas.PaymentInitiateRequest,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    try:
        return payment_service.initiate_payment(db, user, payload)
    except PaymentError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)


@router.get("/callback")
def payment_callback(request: Request, db: Session = Depends(get_db)):
    outcome = payment_service.handle_callback(db, dict(request.query_params))
    logger.info(
        "payment_callback order=%s success=%s reason=%s",
        outcome.order_id, outcome.success, outcome.reason,
    )
    return RedirectResponse(url=outcome.redirect_url(), status_code=302)


@router.get("/esewa/redirect", response_class=HTMLResponse)
def esewa_redirect(
    order_id: str = Query(alias="orderId"),
    db: Session = Depends(get_db),
):
    txn = repo_payments.get_by_order_id(db, order_id)
    if txn is None or txn.payment_gateway != GATEWAY_ESEWA:
        raise HTTPException(status_code=404, detail="Transaction not found")
    if txn.status != "pending":
        raise HTTPException(status_code=400, detail="Transaction is no longer pending")
    metadata = txn.metadata_json or {}
    form_data = metadata.get("formData")
    action_url = metadata.get("paymentUrl")
    if not form_data or not action_url:
        raise HTTPException(status_code=400, detail="Payment form is not available for this transaction")
    html = _templates.get_template("esewa_redirect.html").render(action_url=action_url, form_data=form_data)
    return HTMLResponse(content=html)


@router.post("/verify", response_model=schemas.PaymentTransaction)
def verify_payment_endpoint(
    payload: schemas.PaymentVerifyRequest,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    try:
        return payment_service.verify_payment(db, user, payload)
    except PaymentError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)


@router.get("/status/{transaction_id}", response_model=schemas.PaymentTransaction)
def payment_status(
    transaction_id: int,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    txn = repo_payments.get_transaction(db, transaction_id)
    if txn is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    if not can_view_transaction(txn, current_user):
        raise HTTPException(status_code=403, detail="Forbidden")
    return txn


@router.get("/history", response_model=schemas.PaymentHistory)
def payment_history(
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    items, total = repo_payments.list_user_transactions(db, user.id, skip=(page - 1) * limit, limit=limit)
    return schemas.PaymentHistory(
        transactions=[schemas.PaymentTransaction.model_validate(t) for t in items],
        pagination=schemas.build_pagination(total, page, limit),
    )
