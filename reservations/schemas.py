from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError

from reservations.errors import InvalidRequest


class ClaimRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    service_id: int = Field(..., gt=0, strict=True, alias="serviceId")
    staff_id: int = Field(..., gt=0, strict=True, alias="staffId")
    timeslot_id: int = Field(..., gt=0, strict=True, alias="timeslotId")
    customer_name: str = Field(..., min_length=2, max_length=100, alias="customerName")
    customer_email: EmailStr = Field(..., alias="customerEmail")
    customer_phone: Optional[str] = Field(None, max_length=30, alias="customerPhone")
    notes: Optional[str] = Field(None, max_length=500)


def _field_errors(exc: ValidationError) -> dict:
    details = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err.get("loc") else "__root__"
        # keep the first message per field
        details.setdefault(field, err["msg"])
    return details


def parse_claim_request(payload) -> ClaimRequest:
    if not isinstance(payload, dict):
        raise InvalidRequest(details={"__root__": "Request body must be a JSON object"})
    try:
        req = ClaimRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidRequest(details=_field_errors(exc)) from exc

    # blank optional strings are treated as absent
    if req.customer_phone == "":
        req.customer_phone = None
    if req.notes == "":
        req.notes = None
    return req
