import uuid

from fastapi import APIRouter, Body, Depends
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from schemas.schema import (
    PaymentListOut,
    PaymentOut,
    PaymentProofSchema,
    RejectDecisionSchema,
    ReviewDecisionSchema,
    VerificationOutcome,
)
from services.checkout_service import LeaseCheckoutService
from services.verification_service import PaymentVerificationService

router = APIRouter(tags=["Payments"])


@cbv(router)
class PaymentRoutes:
    @router.get("/review", response_model=PaymentListOut)
    @safe_handler
    async def review_queue(
        self,
        verified: bool = False,
        db: AsyncSession = Depends(get_db_async),
    ):
        items = await PaymentVerificationService(db).list_for_review(verified=verified)
        return PaymentListOut(items=items, count=len(items))

    @router.post("/{payment_id}/proof", response_model=PaymentOut)
    @safe_handler
    async def attach_proof(
        self,
        payment_id: uuid.UUID,
        data: PaymentProofSchema,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseCheckoutService(db).attach_payment_proof(
            payment_id=payment_id,
            method=data.payment_method,
            reference=data.transaction_reference,
            payment_date=data.payment_date,
        )

    @router.post("/{payment_id}/approve", response_model=VerificationOutcome)
    @safe_handler
    async def approve(
        self,
        payment_id: uuid.UUID,
        data: ReviewDecisionSchema | None = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentVerificationService(db).approve(
            payment_id=payment_id, notes=data.notes if data else None
        )

    @router.post("/{payment_id}/reject", response_model=VerificationOutcome)
    @safe_handler
    async def reject(
        self,
        payment_id: uuid.UUID,
        data: RejectDecisionSchema | None = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        data = data or RejectDecisionSchema()
        return await PaymentVerificationService(db).reject(
            payment_id=payment_id, notes=data.notes, strict=data.strict
        )

    @router.post("/{payment_id}/reopen", response_model=VerificationOutcome)
    @safe_handler
    async def reopen(
        self,
        payment_id: uuid.UUID,
        data: ReviewDecisionSchema | None = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentVerificationService(db).reopen(
            payment_id=payment_id, notes=data.notes if data else None
        )

    @router.patch("/{payment_id}", response_model=PaymentOut)
    @safe_handler
    async def edit(
        self,
        payment_id: uuid.UUID,
        fields: dict = Body(...),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentVerificationService(db).edit(payment_id, fields)
