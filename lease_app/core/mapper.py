from typing import Iterable, Type, TypeVar

from pydantic import BaseModel

from schemas.schema import PlanBreakdownOut, SaleBreakdownOut, ServiceBreakdownOut
from services.plan_calculator import PlanBreakdown, SaleBreakdown, ServiceBreakdown

T = TypeVar("T", bound=BaseModel)

BREAKDOWN_SCHEMAS = {
    PlanBreakdown: PlanBreakdownOut,
    SaleBreakdown: SaleBreakdownOut,
    ServiceBreakdown: ServiceBreakdownOut,
}


class ORMMapper:
    """Turns ORM rows and calculator results into response schemas."""

    @staticmethod
    def one(item, schema: Type[T]) -> T:
        return schema.model_validate(item)

    @staticmethod
    def many(items: Iterable, schema: Type[T]) -> list[T]:
        return [schema.model_validate(item) for item in items]

    @staticmethod
    def breakdown(result) -> PlanBreakdownOut | SaleBreakdownOut | ServiceBreakdownOut:
        schema = BREAKDOWN_SCHEMAS[type(result)]
        return schema.model_validate(result)
