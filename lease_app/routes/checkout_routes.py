from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from schemas.schema import (
    CheckoutOut,
    RentalCheckoutSchema,
    SaleCheckoutSchema,
    ServiceCheckoutSchema,
)
from services.checkout_service import LeaseCheckoutService

router = APIRouter(tags=["Checkout"])


@cbv(router)
class CheckoutRoutes:
    @router.post("/rental", response_model=CheckoutOut, status_code=201)
    @safe_handler
    async def rental_checkout(
        self,
        data: RentalCheckoutSchema,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseCheckoutService(db).create_rental_checkout(
            property_id=data.property_id,
            tenant_id=data.tenant_id,
            monthly_rent=data.monthly_rent,
            duration_months=data.duration_months,
            plan=data.plan,
        )

    @router.post("/sale", response_model=CheckoutOut, status_code=201)
    @safe_handler
    async def sale_checkout(
        self,
        data: SaleCheckoutSchema,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseCheckoutService(db).create_sale_checkout(
            property_id=data.property_id,
            buyer_id=data.buyer_id,
            price=data.price,
        )

    @router.post("/service", response_model=CheckoutOut, status_code=201)
    @safe_handler
    async def service_checkout(
        self,
        data: ServiceCheckoutSchema,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseCheckoutService(db).create_service_checkout(
            client_id=data.client_id,
            provider_id=data.provider_id,
            hourly_rate=data.hourly_rate,
            hours=data.hours,
            service_title=data.service_title,
        )
