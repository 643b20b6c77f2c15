"""
Envelope returned by the learning-roadmap REST service.

Every endpoint answers ``{"message", "code", "result", "httpStatus"}``;
``code == 1000`` marks success regardless of the HTTP status.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

SUCCESS_CODE = 1000


class ApiResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    code: int
    result: Any = None
    http_status: Optional[str] = Field(None, alias="httpStatus")

    @property
    def ok(self) -> bool:
        return self.code == SUCCESS_CODE
