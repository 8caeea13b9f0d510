"""
Onboarding Models - the profile sections filled in by the onboarding questionnaire.

Every section field is optional so a section can be filled in over several
requests; ``completed_at`` is stamped by the state machine, never by clients.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BeforeValidator, Field, field_validator

from .base import CamelModel, utcnow


YesNoUnknown = Literal["yes", "no", "unknown"]
Gender = Literal["male", "female", "other"]

GENDER_ALIASES = {
    "male": "male",
    "homme": "male",
    "female": "female",
    "femme": "female",
    "other": "other",
}

ACTIVITY_LEVELS = (
    "sedentary",
    "lightly-active",
    "moderately-active",
    "very-active",
    "extra-active",
)

# camelCase is canonical; hyphenated spellings come from older clients
PRIMARY_GOALS = (
    "weightLoss",
    "muscleGain",
    "endurance",
    "generalHealth",
    "strength",
    "weightGain",
    "maintainWeight",
    "flexibility",
)
LEGACY_PRIMARY_GOALS = {
    "weight-loss": "weightLoss",
    "muscle-gain": "muscleGain",
    "weight-gain": "weightGain",
    "maintain-weight": "maintainWeight",
}


def normalize_gender(value: Any) -> Any:
    if isinstance(value, str):
        return GENDER_ALIASES.get(value.strip().lower(), value)
    return value


GenderField = Annotated[Gender, BeforeValidator(normalize_gender)]


class Section(str, Enum):
    """Onboarding section names as they appear in the API."""
    BASIC_INFO = "basicInfo"
    LIFESTYLE = "lifestyle"
    MEDICAL_HISTORY = "medicalHistory"
    GOALS = "goals"
    PREFERENCES = "preferences"
    LAB_RESULTS = "labResults"

    @property
    def field_name(self) -> str:
        """Attribute name on ``User``."""
        return {
            Section.BASIC_INFO: "basic_info",
            Section.LIFESTYLE: "lifestyle",
            Section.MEDICAL_HISTORY: "medical_history",
            Section.GOALS: "goals",
            Section.PREFERENCES: "preferences",
            Section.LAB_RESULTS: "lab_results",
        }[self]


class SectionModel(CamelModel):
    completed_at: Optional[datetime] = None


class BasicInfo(SectionModel):
    """Identity and body measurements."""
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    date_of_birth: Optional[date] = None
    height: Optional[float] = Field(None, ge=50, le=300)
    height_unit: Literal["cm", "ft"] = "cm"
    weight: Optional[float] = Field(None, ge=20, le=500)
    weight_unit: Literal["kg", "lbs"] = "kg"
    activity_level: Optional[Literal[ACTIVITY_LEVELS]] = None
    city: Optional[str] = None
    profession: Optional[str] = None
    gender: Optional[GenderField] = None
    waist_circumference: Optional[float] = Field(None, gt=0)
    waist_unit: Literal["cm", "in"] = "cm"
    hip_circumference: Optional[float] = Field(None, gt=0)
    hip_unit: Literal["cm", "in"] = "cm"
    smoking: Optional[Literal["smoker", "non_smoker", "occasional_smoker"]] = None
    alcohol: Optional[Literal["no_alcohol", "occasional", "regular", "heavy"]] = None
    initial_fat_mass: Optional[float] = Field(None, ge=0)
    initial_muscle_mass: Optional[float] = Field(None, ge=0)
    fat_mass_target: Optional[float] = Field(None, ge=0)
    muscle_mass_target: Optional[float] = Field(None, ge=0)
    number_of_children: Optional[int] = Field(None, ge=0)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("date_of_birth")
    @classmethod
    def not_in_future(cls, v):
        if v is not None and v > utcnow().date():
            raise ValueError("Date of birth cannot be in the future")
        return v

    @field_validator("activity_level", mode="before")
    @classmethod
    def normalize_activity_level(cls, v):
        return v.replace("_", "-") if isinstance(v, str) else v


class Lifestyle(SectionModel):
    """Daily rhythm, exercise habits and sleep."""
    wake_up_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    sleep_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    work_schedule: Optional[Literal["office", "remote", "hybrid", "shift", "flexible"]] = None
    exercise_frequency: Optional[Literal["0", "1-2", "3-4", "5-6", "7+"]] = None
    exercise_time: Optional[Literal["morning", "afternoon", "evening", "night"]] = None
    favorite_activities: Optional[List[str]] = None
    stress_level: Optional[int] = Field(None, ge=1, le=10)
    sleep_hours: Optional[float] = Field(None, ge=3, le=12)
    sleep_quality: Optional[Literal["poor", "fair", "good", "excellent"]] = None


class PersonalMedicalHistory(CamelModel):
    diabetes: YesNoUnknown = "unknown"
    obesity: YesNoUnknown = "unknown"
    hypothyroidism: YesNoUnknown = "unknown"
    sleep_apnea: YesNoUnknown = "unknown"
    psychological_issues: YesNoUnknown = "unknown"
    digestive_issues: YesNoUnknown = "unknown"
    gastric_balloon: YesNoUnknown = "unknown"
    bariatric_surgery: YesNoUnknown = "unknown"
    other_health_issues: Optional[str] = None
    sexual_dysfunction: YesNoUnknown = "unknown"
    water_retention_percentage: Optional[str] = None


class FamilyHistory(CamelModel):
    heart_disease: YesNoUnknown = "unknown"
    diabetes: YesNoUnknown = "unknown"
    obesity: YesNoUnknown = "unknown"
    thyroid_issues: YesNoUnknown = "unknown"


class TreatmentHistory(CamelModel):
    medical_treatment: YesNoUnknown = "unknown"
    psychotherapy: YesNoUnknown = "unknown"
    prior_obesity_treatments: Optional[str] = None


class MedicalHistory(SectionModel):
    chronic_conditions: Optional[List[str]] = None
    medications: Optional[str] = None
    allergies: Optional[str] = None
    physical_limitations: Optional[str] = None
    avoid_areas: Optional[List[str]] = None
    gender: Optional[GenderField] = None
    female_specific_attributes: Optional[Dict[str, Any]] = None
    personal_medical_history: Optional[PersonalMedicalHistory] = None
    family_history: Optional[FamilyHistory] = None
    treatment_history: Optional[TreatmentHistory] = None


class Goals(SectionModel):
    primary_goal: Optional[Literal[PRIMARY_GOALS]] = None
    secondary_goals: Optional[List[Literal[
        "betterSleep", "stressReduction", "flexibility", "balance", "energyBoost"
    ]]] = None
    target_timeline: Optional[int] = Field(None, ge=1, le=120)  # months
    current_weight: Optional[float] = Field(None, ge=20, le=500)
    target_weight: Optional[float] = Field(None, ge=20, le=500)
    weekly_goal: Optional[float] = None

    @field_validator("primary_goal", mode="before")
    @classmethod
    def normalize_primary_goal(cls, v):
        if isinstance(v, str):
            return LEGACY_PRIMARY_GOALS.get(v, v)
        return v


class Preferences(SectionModel):
    """Optional, free-form section."""

    class Config:
        extra = "allow"


class LabResults(SectionModel):
    """Blood work. Informational: does not count toward completeness."""
    gender: Optional[GenderField] = None
    homa_ir: Optional[float] = Field(None, ge=0, alias="homaIR")
    vit_d: Optional[float] = Field(None, ge=0)
    ferritin: Optional[float] = Field(None, ge=0)
    hemoglobin: Optional[float] = Field(None, ge=0)
    a1c: Optional[float] = Field(None, ge=0)
    tsh: Optional[float] = Field(None, ge=0)
    testosterone: Optional[float] = Field(None, ge=0)
    prolactin: Optional[float] = Field(None, ge=0)
    submitted_at: Optional[datetime] = None



SECTION_MODELS = {
    Section.BASIC_INFO: BasicInfo,
    Section.LIFESTYLE: Lifestyle,
    Section.MEDICAL_HISTORY: MedicalHistory,
    Section.GOALS: Goals,
    Section.PREFERENCES: Preferences,
    Section.LAB_RESULTS: LabResults,
}


class DataQuality(CamelModel):
    has_basic_info: bool = False
    has_lifestyle: bool = False
    has_medical_history: bool = False
    has_goals: bool = False
    has_preferences: bool = False
    completeness_score: str = "0%"


class SessionInfo(CamelModel):
    """Completion telemetry stamped when onboarding finishes."""
    completion_timestamp: Optional[datetime] = None
    completion_date: Optional[str] = None
    total_xp_earned: int = Field(0, alias="totalXPEarned")
    user_level: int = 1
    sections_completed: int = 0
    completion_rate: Optional[str] = None


class OnboardingStatus(CamelModel):
    completed: bool
    step: int
    completeness: int
    sections_completed: Dict[str, bool]
