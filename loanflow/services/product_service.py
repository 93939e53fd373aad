from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loanflow.config import Settings, settings as default_settings
from loanflow.errors import InvalidAmount, InvalidTerm, ProductNotFound, operation
from loanflow.models import LoanProductRow
from loanflow.schemas.common import utcnow
from loanflow.schemas.product import LoanProduct, ProductCreate
from loanflow.schemas.status import DocumentType

logger = logging.getLogger(__name__)


class ProductService:
    """Loan product catalog: bounds and required documents per product."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        settings: Settings | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or default_settings

    @operation("create_product")
    async def create_product(self, obj_in: ProductCreate) -> LoanProduct:
        required = obj_in.required_document_types
        if required is None:
            required = [DocumentType(t) for t in self._settings.default_required_documents]

        product = LoanProduct(
            id=obj_in.id,
            name=obj_in.name,
            min_amount=obj_in.min_amount,
            max_amount=obj_in.max_amount,
            min_term_months=obj_in.min_term_months,
            max_term_months=obj_in.max_term_months,
            base_rate=obj_in.base_rate,
            required_document_types=required,
        )

        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(LoanProductRow, product.id)
                if row is None:
                    row = LoanProductRow(id=product.id, created_at=utcnow())
                    session.add(row)
                row.name = product.name
                row.min_amount = product.min_amount
                row.max_amount = product.max_amount
                row.min_term_months = product.min_term_months
                row.max_term_months = product.max_term_months
                row.base_rate = product.base_rate
                row.required_document_types = [t.value for t in product.required_document_types]
                row.is_active = True

        logger.info("product_saved product_id=%s", product.id)
        return product

    @operation("get_product")
    async def get_product(self, product_id: str, *, include_inactive: bool = False) -> LoanProduct:
        async with self._session_factory() as session:
            row = await session.get(LoanProductRow, product_id)
            if row is None or not (row.is_active or include_inactive):
                raise ProductNotFound(f"Product not found: {product_id}")
            return LoanProduct.model_validate(row)

    @staticmethod
    def validate_request(product: LoanProduct, amount: float, term_months: int) -> None:
        if not product.min_amount <= amount <= product.max_amount:
            raise InvalidAmount(
                f"Invalid loan amount: {amount} is outside "
                f"[{product.min_amount}, {product.max_amount}] for product {product.id}"
            )
        if not product.min_term_months <= term_months <= product.max_term_months:
            raise InvalidTerm(
                f"Invalid loan term: {term_months} months is outside "
                f"[{product.min_term_months}, {product.max_term_months}] for product {product.id}"
            )
