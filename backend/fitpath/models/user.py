"""
User Model - Defines the user document and the account request bodies.
"""

import uuid
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import EmailStr, Field, StrictBool, field_validator, model_validator

from ..core.security import validate_email_domain, validate_password
from .base import CamelModel, utcnow
from .onboarding import (
    BasicInfo,
    DataQuality,
    Goals,
    LabResults,
    Lifestyle,
    MedicalHistory,
    Preferences,
    SessionInfo,
)

REFRESH_TOKEN_TTL = timedelta(days=7)
MAX_REFRESH_TOKENS = 5

# Fields never returned by any endpoint
PRIVATE_FIELDS = {"hashed_password", "refresh_tokens", "version"}


class RefreshTokenEntry(CamelModel):
    """One issued refresh token, valid for ``REFRESH_TOKEN_TTL`` after creation."""
    token: str
    created_at: datetime = Field(default_factory=utcnow)

    def is_expired(self, now: Optional[datetime] = None, ttl: timedelta = REFRESH_TOKEN_TTL) -> bool:
        return (now or utcnow()) >= self.created_at + ttl


class User(CamelModel):
    """User document as stored, including credentials and onboarding state."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    email: str
    hashed_password: str
    is_email_verified: bool = False
    is_admin: bool = False
    refresh_tokens: List[RefreshTokenEntry] = Field(default_factory=list)
    last_login_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 0

    # Onboarding progress
    onboarding_completed: bool = False
    onboarding_step: int = Field(0, ge=0, le=6)  # 0 = untouched, 1-5 = sections, 6 = done
    profile_completeness: int = Field(0, ge=0, le=100)

    basic_info: BasicInfo = Field(default_factory=BasicInfo)
    lifestyle: Lifestyle = Field(default_factory=Lifestyle)
    medical_history: MedicalHistory = Field(default_factory=MedicalHistory)
    goals: Goals = Field(default_factory=Goals)
    preferences: Preferences = Field(default_factory=Preferences)
    lab_results: LabResults = Field(default_factory=LabResults)

    data_quality: DataQuality = Field(default_factory=DataQuality)
    session_info: SessionInfo = Field(default_factory=SessionInfo)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()

    # ---------------------------------------------------------------- tokens

    def add_refresh_token(
        self,
        token: str,
        now: Optional[datetime] = None,
        limit: int = MAX_REFRESH_TOKENS,
    ) -> None:
        """Append a refresh token, keeping only the ``limit`` most recent."""
        self.refresh_tokens.append(RefreshTokenEntry(token=token, created_at=now or utcnow()))
        if len(self.refresh_tokens) > limit:
            self.refresh_tokens = self.refresh_tokens[-limit:]

    def is_valid_refresh_token(
        self,
        token: str,
        now: Optional[datetime] = None,
        ttl: timedelta = REFRESH_TOKEN_TTL,
    ) -> bool:
        now = now or utcnow()
        return any(
            entry.token == token and not entry.is_expired(now, ttl)
            for entry in self.refresh_tokens
        )

    def clean_expired_tokens(self, now: Optional[datetime] = None, ttl: timedelta = REFRESH_TOKEN_TTL) -> int:
        """Drop expired refresh tokens. Returns how many were removed."""
        now = now or utcnow()
        kept = [entry for entry in self.refresh_tokens if not entry.is_expired(now, ttl)]
        removed = len(self.refresh_tokens) - len(kept)
        self.refresh_tokens = kept
        return removed

    def revoke_refresh_token(self, token: str) -> bool:
        kept = [entry for entry in self.refresh_tokens if entry.token != token]
        revoked = len(kept) != len(self.refresh_tokens)
        self.refresh_tokens = kept
        return revoked

    def revoke_all_refresh_tokens(self) -> None:
        self.refresh_tokens = []

    # ---------------------------------------------------------- derived data

    def refresh_data_quality(self) -> None:
        """
        Recompute the section flags and ``profile_completeness``.

        Only the four required sections count; preferences is optional and
        lab results are informational.
        """
        basic, life, goals = self.basic_info, self.lifestyle, self.goals
        quality = self.data_quality
        quality.has_basic_info = bool(
            basic.name and basic.date_of_birth and basic.height and basic.weight
        )
        quality.has_lifestyle = bool(
            life.wake_up_time and life.sleep_time and life.exercise_frequency
        )
        quality.has_medical_history = bool(self.medical_history.gender)
        quality.has_goals = bool(goals.primary_goal and goals.target_weight)
        quality.has_preferences = self.preferences.completed_at is not None

        required = [
            quality.has_basic_info,
            quality.has_lifestyle,
            quality.has_medical_history,
            quality.has_goals,
        ]
        self.profile_completeness = round(100 * sum(required) / len(required))
        quality.completeness_score = f"{self.profile_completeness}%"

    def bmi(self) -> Optional[float]:
        weight, height = self.basic_info.weight, self.basic_info.height
        if not weight or not height:
            return None
        meters = height / 100
        return round(weight / (meters * meters), 1)

    def age(self, today: Optional[date] = None) -> Optional[int]:
        birth = self.basic_info.date_of_birth
        if not birth:
            return None
        today = today or utcnow().date()
        years = today.year - birth.year
        if (today.month, today.day) < (birth.month, birth.day):
            years -= 1
        return years

    # --------------------------------------------------------- serialization

    def summary(self) -> Dict[str, Any]:
        """Minimal user block returned by sign-up / sign-in."""
        return {
            "id": self.id,
            "email": self.email,
            "onboardingCompleted": self.onboarding_completed,
            "onboardingStep": self.onboarding_step,
        }

    def public_profile(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "isEmailVerified": self.is_email_verified,
            "onboardingCompleted": self.onboarding_completed,
            "onboardingStep": self.onboarding_step,
            "profileCompleteness": self.profile_completeness,
            "basicInfo": {"name": self.basic_info.name},
            "createdAt": self.created_at.isoformat(),
            "lastLoginAt": self.last_login_at.isoformat() if self.last_login_at else None,
        }

    def full_profile(self) -> Dict[str, Any]:
        """Everything except credentials, plus BMI and age."""
        profile = self.model_dump(mode="json", by_alias=True, exclude=PRIVATE_FIELDS)
        profile["bmi"] = self.bmi()
        profile["age"] = self.age()
        return profile


class SignupRequest(CamelModel):
    email: EmailStr
    password: str
    confirm_password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        errors = validate_email_domain(v)
        if errors:
            raise ValueError("; ".join(errors))
        return v.lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        errors = validate_password(v)
        if errors:
            raise ValueError("; ".join(errors))
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Password confirmation does not match password")
        return self


class SigninRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lowercase(cls, v: str) -> str:
        return v.lower()


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str
    confirm_new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password(cls, v: str) -> str:
        errors = validate_password(v)
        if errors:
            raise ValueError("; ".join(errors))
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_new_password:
            raise ValueError("Password confirmation does not match new password")
        return self


class ChangeEmailRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        errors = validate_email_domain(v)
        if errors:
            raise ValueError("; ".join(errors))
        return v.lower()


class AdminStatusUpdate(CamelModel):
    is_admin: StrictBool
