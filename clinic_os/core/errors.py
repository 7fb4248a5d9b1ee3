"""Domain error taxonomy.

Errors carry a stable code and optional structured details. The HTTP status
is fixed per class; the bilingual message comes from the catalogue.
"""

from __future__ import annotations

from typing import Any, Optional

from clinic_os.core.messages import BilingualMessage, message_for


class ClinicOSError(Exception):
    """Base class for business-rule violations surfaced to API clients."""

    status_code: int = 400

    def __init__(self, code: str, details: Optional[dict[str, Any]] = None):
        super().__init__(code)
        self.code = code
        self.details = details

    @property
    def message(self) -> BilingualMessage:
        return message_for(self.code)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message.model_dump()}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotFoundError(ClinicOSError):
    status_code = 404


class BadRequestError(ClinicOSError):
    status_code = 400


class ConflictError(ClinicOSError):
    status_code = 409
