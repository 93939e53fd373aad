from __future__ import annotations

from fastapi import APIRouter, Depends, status

from loanflow.api.deps import get_services
from loanflow.schemas.product import LoanProduct, ProductCreate
from loanflow.services import Services

router = APIRouter(prefix="/products", tags=["products"])


@router.put("", response_model=LoanProduct, status_code=status.HTTP_200_OK)
async def upsert_product_endpoint(
    payload: ProductCreate,
    services: Services = Depends(get_services),
) -> LoanProduct:
    return await services.products.create_product(payload)


@router.get("/{product_id}", response_model=LoanProduct)
async def get_product_endpoint(
    product_id: str,
    services: Services = Depends(get_services),
) -> LoanProduct:
    return await services.products.get_product(product_id)
