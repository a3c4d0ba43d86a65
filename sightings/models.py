from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ReportStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"


class Report(CamelModel):
    id: str
    created: datetime = Field(default_factory=utcnow)
    location: str = ""
    description: str = ""
    image_ref: Optional[str] = None
    status: ReportStatus = ReportStatus.PENDING
    verified_awarded: bool = False
    user_id: Optional[str] = None
    award: int = 0
    local_id: Optional[str] = None

    @model_validator(mode="after")
    def _awarded_only_when_verified(self):
        if self.verified_awarded and self.status != ReportStatus.VERIFIED:
            raise ValueError("verifiedAwarded requires status 'verified'")
        return self

    def is_verified(self) -> bool:
        return self.status == ReportStatus.VERIFIED


class RewardCatalogEntry(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    cost: int = Field(..., gt=0)
    desc: str = ""


class Redemption(CamelModel):
    id: str
    user_id: str
    reward_id: str
    reward_name: str
    cost: int = Field(..., gt=0)
    created: datetime = Field(default_factory=utcnow)
    synced: bool = False
    client_ref: Optional[str] = None


class SubmitReportRequest(CamelModel):
    user_id: Optional[str] = None
    location: str = ""
    description: str = ""
    captured: Optional[str] = Field(default=None, description="Base64 data: URL of the photo")
    image_ref: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, json_schema_extra={
        "example": {
            "userId": "u-1718000000000-k3j9a8b",
            "location": "North trail, near the footbridge",
            "description": "Two otters on the east bank",
            "captured": "data:image/jpeg;base64,/9j/4AAQSkZJRg==",
        }
    })


class SubmitResult(CamelModel):
    success: bool = True
    report: Report
    award: int


class VerifyResult(CamelModel):
    success: bool
    report: Report
    award: int = 0
    already_verified: bool = False
    message: str = ""


class RedeemRequest(CamelModel):
    user_id: str
    reward_id: str
    client_ref: Optional[str] = None


class RedeemResponse(CamelModel):
    success: bool = True
    redemption: Redemption


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    token: str


class ReportListResponse(BaseModel):
    reports: list[Report]


class RewardCatalogResponse(BaseModel):
    rewards: list[RewardCatalogEntry]


class UserBalance(CamelModel):
    user_id: str
    balance: int
