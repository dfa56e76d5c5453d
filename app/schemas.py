from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_PASSWORD_LEN = 72  # bcrypt limit


class CamelModel(BaseModel):
    """Base for payloads exchanged with the web client in camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ============ Auth Schemas ============

class UserCreate(CamelModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=6, max_length=100)
    email: EmailStr | None = None

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username must not be blank")
        return v

    @field_validator("password")
    @classmethod
    def password_length_guard(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_LEN:
            raise ValueError(f"password must be <= {MAX_PASSWORD_LEN} bytes")
        return v


class UserLogin(CamelModel):
    username: str
    password: str


class UserResponse(CamelModel):
    id: int
    username: str
    email: str | None = None
    display_name: str | None = None
    profile_picture: str | None = None
    is_subscribed: bool = False


class TokenData(BaseModel):
    user_id: int | None = None


# ============ Analysis Schemas ============

class EmotionScore(BaseModel):
    name: str
    score: float = Field(..., ge=0, le=100)


class Analysis(BaseModel):
    """Emotions and themes derived from one entry's text."""

    emotions: list[EmotionScore] = Field(..., min_length=1)
    themes: list[str] = Field(..., min_length=1)


class Insight(CamelModel):
    title: str
    description: str
    suggested_color: str
    derived_entry_count: int = Field(..., ge=0)


# ============ Entry Schemas ============

class EntryCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        # strip before the length check so a blank title is rejected
        return v.strip() if isinstance(v, str) else v


class EntryUpdate(CamelModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = Field(None, min_length=1)
    is_starred: bool | None = None
    clarity_rating: int | None = Field(None, ge=0, le=5)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v


class ClarityUpdate(CamelModel):
    rating: int = Field(..., ge=0, le=5)


class EmotionResponse(CamelModel):
    id: int
    entry_id: int
    emotion: str
    score: int


class ThemeResponse(CamelModel):
    id: int
    entry_id: int
    theme: str


class EntryResponse(CamelModel):
    id: int
    user_id: int
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    is_starred: bool = False
    clarity_rating: int = 0


class EntryWithAnalysis(EntryResponse):
    emotions: list[EmotionResponse] = []
    themes: list[ThemeResponse] = []


class EntryListResponse(CamelModel):
    results: list[EntryWithAnalysis]
    insights: list[Insight]


class InsightsResponse(CamelModel):
    theme_counts: dict[str, int]
    insights: list[Insight]


# ============ Subscription Schemas ============

class SubscriptionStatus(CamelModel):
    is_subscribed: bool
    subscription_expiry: datetime | None = None


class CheckoutResponse(BaseModel):
    url: str


class WebhookAck(BaseModel):
    received: bool = True
