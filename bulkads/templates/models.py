"""
Ad template models.

A template bundles the ad copy, targeting, placement and budget hints that are
applied to every media item of a bulk creation job.
"""

from typing import List, Optional, Union
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

class CallToAction(str, Enum):
    """Call-to-action button types supported by templates."""
    SHOP_NOW = "SHOP_NOW"
    LEARN_MORE = "LEARN_MORE"
    SIGN_UP = "SIGN_UP"
    BOOK_NOW = "BOOK_NOW"
    CONTACT_US = "CONTACT_US"

class Currency(str, Enum):
    """Supported budget currencies."""
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"

class BudgetType(str, Enum):
    """Budget pacing."""
    DAILY = "DAILY"
    LIFETIME = "LIFETIME"

class Gender(str, Enum):
    """Gender targeting values."""
    ALL = "all"
    MEN = "men"
    WOMEN = "women"

class AdCopy(BaseModel):
    """Text content of an ad."""
    headline: str = Field(..., min_length=1, max_length=40)
    primary_text: str = Field(..., min_length=1, max_length=125)
    call_to_action: Optional[CallToAction] = None
    description: Optional[str] = Field(None, max_length=125)

class Targeting(BaseModel):
    """Audience targeting parameters."""
    age_min: Optional[int] = Field(None, ge=13, le=65)
    age_max: Optional[int] = Field(None, ge=13, le=65)
    genders: List[Gender] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list, description="ISO country codes")
    interests: List[str] = Field(default_factory=list, description="Interest IDs")
    custom_audiences: List[str] = Field(default_factory=list, description="Custom audience IDs")

    @model_validator(mode="after")
    def validate_age_range(self):
        """Validate the age range is ordered."""
        if self.age_min is not None and self.age_max is not None and self.age_min > self.age_max:
            raise ValueError("Minimum age cannot be greater than maximum age")
        return self

class Budget(BaseModel):
    """Budget configuration."""
    amount: Union[float, str] = Field(..., description="Budget amount in major currency units")
    currency: Currency = Currency.USD
    type: BudgetType = BudgetType.DAILY

class Placement(BaseModel):
    """Placement flags."""
    facebook: bool = True
    instagram: bool = True
    audience_network: bool = False

class Delivery(BaseModel):
    """Optional delivery hints used when creating ad sets."""
    accelerated: Optional[bool] = None
    cost_per_result: Optional[float] = Field(None, gt=0)
    cost_per_result_currency: Optional[Currency] = None

class AdTemplate(BaseModel):
    """A stored ad template."""
    id: str
    name: str
    description: str = ""
    ad_copy: AdCopy
    targeting: Targeting = Field(default_factory=Targeting)
    budget: Budget
    placement: Placement = Field(default_factory=Placement)
    delivery: Optional[Delivery] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

class TemplateCreate(BaseModel):
    """Payload for creating a template."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    ad_copy: AdCopy
    targeting: Targeting = Field(default_factory=Targeting)
    budget: Budget
    placement: Placement = Field(default_factory=Placement)
    delivery: Optional[Delivery] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Validate template name is not blank."""
        if not v.strip():
            raise ValueError("Template name is required")
        return v.strip()

class TemplateUpdate(BaseModel):
    """Partial template update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    ad_copy: Optional[AdCopy] = None
    targeting: Optional[Targeting] = None
    budget: Optional[Budget] = None
    placement: Optional[Placement] = None
    delivery: Optional[Delivery] = None

class PaginationInfo(BaseModel):
    """Pagination metadata for list responses."""
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

class TemplateList(BaseModel):
    """A page of templates."""
    templates: List[AdTemplate]
    pagination: PaginationInfo
