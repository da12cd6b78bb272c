from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, Dict, List
from datetime import datetime
from .urls import is_valid_url

INVALID_URL_MESSAGE = "Invalid URL: Only http:// and https:// protocols are allowed"


def validate_destination(url: str) -> str:
    """Reject anything that is not an absolute http(s) URL (javascript:, data:, ftp:, ...)."""
    if not is_valid_url(url):
        raise ValueError(INVALID_URL_MESSAGE)
    return url


class QRCreate(BaseModel):
    name: Optional[str] = None
    destination_url: str
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None
    impression_tag: Optional[str] = None

    @field_validator('destination_url')
    @classmethod
    def validate_destination_url(cls, v):
        return validate_destination(v)


class QRUpdate(BaseModel):
    """Partial update: only fields present in the request body are applied."""
    name: Optional[str] = None
    destination_url: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None
    impression_tag: Optional[str] = None

    @field_validator('destination_url')
    @classmethod
    def validate_destination_url(cls, v):
        # An explicit null would leave the record without a destination
        if v is None:
            raise ValueError("destination_url cannot be null")
        return validate_destination(v)


class QROut(BaseModel):
    id: int
    slug: str
    name: Optional[str] = None
    destination_url: str
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None
    impression_tag: Optional[str] = None
    created_at: datetime
    archived_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class QRDetail(QROut):
    redirect_url: str
    qr_code_image: str


class QRListItem(QROut):
    redirect_url: str
    total_scans: int = 0


class DailyStat(BaseModel):
    date: str
    scans: int
    unique_scans: int


class CountryStat(BaseModel):
    country: str
    scans: int


class StatsOut(BaseModel):
    total_scans: int
    unique_scans: int
    daily_series: List[DailyStat] = Field(default_factory=list)
    top_countries: List[CountryStat] = Field(default_factory=list)
    device_breakdown: Dict[str, int] = Field(default_factory=dict)
    browser_breakdown: Dict[str, int] = Field(default_factory=dict)
