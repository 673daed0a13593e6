"""
Onboarding wizard step payloads

Each step of the onboarding wizard is validated locally before it is cached,
so bad input never reaches the backend.
"""
from typing import Optional, Dict, Literal
from datetime import datetime, date
from pydantic import BaseModel, Field, field_validator, ValidationError


class ContactDetails(BaseModel):
    """
    Step 1: who the patient is and how to reach them
    """
    name: str                    = Field(...,  description="Patient legal name")
    email: Optional[str]         = Field(None, description="Email address")
    phone: Optional[str]         = Field(None, description="Phone number")

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class PersonalDetails(BaseModel):
    """
    Step 2: date of birth and body measurements
    """
    date_of_birth: str           = Field(...,  description="Date of birth (format: YYYY-MM-DD)")
    sex: Optional[Literal["male", "female", "unknown"]] = Field(None, description="Sex assigned at birth")
    height_cm: Optional[float]   = Field(None, description="Height in centimeters (cm)")
    weight_kg: Optional[float]   = Field(None, description="Weight in kilograms (kg)")

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, value: str) -> str:
        try:
            parsed = datetime.strptime(value, "%Y-%m-%d").date()
        except ValueError:
            raise ValueError("date_of_birth must be in YYYY-MM-DD format")
        if parsed > date.today():
            raise ValueError("date_of_birth cannot be in the future")
        return value

    @field_validator("height_cm")
    @classmethod
    def validate_height_cm(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return value
        if not (50 <= value <= 250):
            raise ValueError("height_cm must be between 50 and 250")
        return value

    @field_validator("weight_kg")
    @classmethod
    def validate_weight_kg(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return value
        if not (20 <= value <= 300):
            raise ValueError("weight_kg must be between 20 and 300")
        return value


class MedicalDetails(BaseModel):
    """
    Step 3: kidney disease and referral status
    """
    has_ckd_esrd: bool           = Field(...,  description="Whether patient has CKD or ESRD")
    last_gfr: Optional[float]    = Field(None, description="Last known GFR value")
    has_referral: bool           = Field(...,  description="Whether patient already has a referral to a transplant center")

    @field_validator("last_gfr")
    @classmethod
    def validate_last_gfr(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return value
        if not (0 <= value <= 200):
            raise ValueError("Please enter a valid GFR value (0-200)")
        return value


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """
    Flatten a pydantic ValidationError into {field: message} for inline display

    Only the first message per field is kept.
    """
    errors: Dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
        message = error.get("msg", "Invalid value")
        # pydantic prefixes messages raised from validators
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors
