"""
Seller verification endpoints (pricing, status and document submission).
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from bazaar.db import schemas
from bazaar.db.database import get_db
from bazaar.api.deps import get_current_user_context, get_optional_user_context
from bazaar.services import verification_service
from bazaar.services.verification_service import DEFAULT_DURATION_DAYS, VerificationError

router = APIRouter(prefix="/verification", tags=["verification"])


@router.get("/pricing")
def verification_pricing(
    db: Session = Depends(get_db),
    user_context=Depends(get_optional_user_context),
) -> Dict[str, Any]:
    user = user_context[0] if user_context else None
    return verification_service.get_pricing_overview(db, user)


@router.get("/status", response_model=schemas.VerificationStatus)
def verification_status(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    return verification_service.get_verification_status(db, user)


@router.post("/individual", response_model=schemas.IndividualVerificationRequest, status_code=status.HTTP_201_CREATED)
def submit_individual(
    full_name: str = Form(...),
    id_document_type: str = Form(...),
    id_document_number: Optional[str] = Form(default=None),
    duration_days: int = Form(default=DEFAULT_DURATION_DAYS),
    payment_amount: float = Form(default=0),
    payment_reference: Optional[str] = Form(default=None),
    front: Optional[UploadFile] = File(default=None),
    back: Optional[UploadFile] = File(default=None),
    selfie: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    try:
        return verification_service.submit_individual_verification(
            db,
            user,
            full_name=full_name,
            id_document_type=id_document_type,
            id_document_number=id_document_number,
            duration_days=duration_days,
            payment_amount=payment_amount,
            payment_reference=payment_reference,
            front=front,
            back=back,
            selfie=selfie,
        )
    except VerificationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)


@router.post("/business", response_model=schemas.BusinessVerificationRequest, status_code=status.HTTP_201_CREATED)
def submit_business(
    business_name: str = Form(...),
    business_category: Optional[str] = Form(default=None),
    business_description: Optional[str] = Form(default=None),
    business_website: Optional[str] = Form(default=None),
    business_phone: Optional[str] = Form(default=None),
    business_address: Optional[str] = Form(default=None),
    duration_days: int = Form(default=DEFAULT_DURATION_DAYS),
    payment_amount: float = Form(default=0),
    payment_reference: Optional[str] = Form(default=None),
    license_document: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    try:
        return verification_service.submit_business_verification(
            db,
            user,
            business_name=business_name,
            business_category=business_category,
            business_description=business_description,
            business_website=business_website,
            business_phone=business_phone,
            business_address=business_address,
            duration_days=duration_days,
            payment_amount=payment_amount,
            payment_reference=payment_reference,
            license_document=license_document,
        )
    except VerificationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
