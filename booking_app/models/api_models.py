from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Incoming Request Models ---

class SignupRequest(ApiModel):
    email: str
    password: str
    name: str


class LoginRequest(ApiModel):
    email: str
    password: str


class ProfileUpdateRequest(ApiModel):
    name: str


class CreateBookingRequest(ApiModel):
    service: str
    date: str
    time_slot: str


class StatusUpdateRequest(ApiModel):
    status: str


class RescheduleRequest(ApiModel):
    date: str
    time_slot: str


class ReviewRequest(ApiModel):
    rating: int
    comment: Optional[str] = ""


class ValueRequest(ApiModel):
    name: str


class ValuesRequest(ApiModel):
    values: List[str]


# --- Outgoing Response Models ---

class VerificationLink(ApiModel):
    token: str
    url: str
    qr_code: Optional[str] = None
