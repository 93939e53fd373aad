from __future__ import annotations

import logging

from loanflow.config import Settings, settings as default_settings
from loanflow.errors import InvalidDecision
from loanflow.schemas.application import LoanApplication, RiskAssessment
from loanflow.worker.dispatch import enqueue_credit_check

logger = logging.getLogger(__name__)


class RiskService:
    """Boundary to the external risk scorer.

    Scores are never computed here. The engine asks for a credit check when an
    application's documents are all verified, and later accepts the result.
    """

    def __init__(self, *, settings: Settings | None = None) -> None:
        self._settings = settings or default_settings

    def start_credit_check(self, application: LoanApplication) -> bool:
        requested = enqueue_credit_check(application_id=application.id, settings=self._settings)
        logger.info("credit_check_started application_id=%s enqueued=%s", application.id, requested)
        return requested

    @staticmethod
    def accept(application: LoanApplication, assessment: RiskAssessment) -> RiskAssessment:
        """Bind an incoming assessment to the application it was made for."""

        if assessment.application_id is None:
            return assessment.model_copy(update={"application_id": application.id})
        if assessment.application_id != application.id:
            raise InvalidDecision(
                f"Risk assessment {assessment.id} belongs to application {assessment.application_id}"
            )
        return assessment
