"""
Submission validation middleware.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError as PydanticValidationError

from contact_relay.app.adapters.base import CommonRequest, CommonResponse
from contact_relay.app.core.errors import ValidationError, validation_details
from contact_relay.app.middleware.chain import NextFunction
from contact_relay.app.schemas.email import EmailSubmission

logger = logging.getLogger(__name__)


async def validate_email_request(req: CommonRequest, res: CommonResponse, next_fn: NextFunction) -> None:
    """Reject bodies that are not a valid contact-form submission."""
    if not isinstance(req.body, dict):
        raise ValidationError(
            details=[{"field": "body", "message": "Request body must be a JSON object", "type": "dict_type"}]
        )
    try:
        EmailSubmission.model_validate(req.body)
    except PydanticValidationError as exc:
        details = validation_details(exc)
        logger.info(
            "Submission failed validation",
            extra={"ip": req.ip, "fields": ",".join(d["field"] for d in details)},
        )
        raise ValidationError(details=details) from exc

    await next_fn()
