import uuid

from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.enums import PaymentPlan
from schemas.schema import (
    PlanBreakdownOut,
    RenewalCreatedOut,
    RenewalEligibilityOut,
    RenewalRequestSchema,
)
from services.renewal_service import LeaseRenewalService

router = APIRouter(tags=["Lease Renewals"])


@cbv(router)
class LeaseRenewalRoutes:
    @router.get("/{lease_id}/renewal", response_model=RenewalEligibilityOut)
    @safe_handler
    async def renewal_eligibility(
        self,
        lease_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseRenewalService(db).eligibility(lease_id)

    @router.post(
        "/{lease_id}/renewal", response_model=RenewalCreatedOut, status_code=201
    )
    @safe_handler
    async def request_renewal(
        self,
        lease_id: uuid.UUID,
        data: RenewalRequestSchema,
        db: AsyncSession = Depends(get_db_async),
    ):
        renewal_id = await LeaseRenewalService(db).create_renewal_request(
            lease_id=lease_id,
            new_duration_months=data.new_duration_months,
            notes=data.notes,
        )
        return RenewalCreatedOut(lease_id=renewal_id, renewed_from_id=lease_id)

    @router.get("/{lease_id}/renewal/quote", response_model=PlanBreakdownOut)
    @safe_handler
    async def renewal_quote(
        self,
        lease_id: uuid.UUID,
        months: int = 12,
        plan: PaymentPlan = PaymentPlan.FLEXI50,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseRenewalService(db).quote_renewal(
            lease_id, new_duration_months=months, plan=plan
        )
