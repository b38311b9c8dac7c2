"""Submission schemas for the landing-site forms.

Validation mirrors the rules the frontend enforces, so a payload that
passes here is safe to hand to the CRM unchanged. Normalizing validators
(name whitespace, phone spacing, numeric strings) rewrite values in place.
"""

import re
from typing import Any

from pydantic import BaseModel, Field, StrictBool, ValidationError, field_validator

NAME_PATTERN = re.compile(r"[a-zA-Z][a-zA-Z\s\-']*", re.ASCII)
PHONE_PATTERN = re.compile(r"\+?[\d\s]{10,20}", re.ASCII)
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+", re.ASCII)
DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
DIGITS_PATTERN = re.compile(r"\d+", re.ASCII)

YES_NO = ("YES", "NO")
CITIZENSHIPS = ("POLAND", "OTHER")
CODE_95_OPTIONS = ("NO", "YES, POLISH", "YES, OTHER EU COUNTRY")


def _clean_name(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{label} is required")
    if len(value) < 2:
        raise ValueError(f"{label} must be at least 2 characters")
    if len(value) > 50:
        raise ValueError(f"{label} must not exceed 50 characters")
    if not NAME_PATTERN.fullmatch(value):
        raise ValueError(
            f"{label} must start with a letter and contain only Latin letters, "
            "spaces, hyphens and apostrophes"
        )
    return re.sub(r"\s+", " ", value, flags=re.ASCII).strip()


def _clean_phone(value: str, label: str) -> str:
    if not PHONE_PATTERN.fullmatch(value):
        raise ValueError(
            f"{label} must contain 10-15 digits with optional + prefix and spaces"
        )
    return re.sub(r"\s", "", value, flags=re.ASCII)


def _check_email(value: str) -> str:
    if not EMAIL_PATTERN.fullmatch(value):
        raise ValueError("Invalid email address")
    if len(value) > 100:
        raise ValueError("Email too long")
    return value


def _one_of(value: str, choices: tuple[str, ...], message: str) -> str:
    if value not in choices:
        raise ValueError(message)
    return value


def _numeric_string_to_int(value: Any, message: str) -> Any:
    if isinstance(value, bool):
        raise ValueError(message)
    if isinstance(value, str):
        if not DIGITS_PATTERN.fullmatch(value):
            raise ValueError(message)
        return int(value)
    return value


class LeadForm(BaseModel):
    """Short lead form (``POST /api/submit-form``)."""

    first_name: str
    email: str
    whatsapp_phone: str
    citizenship: str
    has_experience: str
    code_95: str
    start_date: str
    cover_letter: str | None = Field(default=None, max_length=1000)
    vacancy_id: int = Field(gt=0)
    user_ip: str | None = None
    website: str | None = Field(default=None, max_length=0)
    honeypot: str | None = Field(default=None, max_length=0)

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, v: str) -> str:
        return _clean_name(v, "Name")

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("whatsapp_phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return _clean_phone(v, "Phone")

    @field_validator("citizenship")
    @classmethod
    def _citizenship(cls, v: str) -> str:
        return _one_of(v, CITIZENSHIPS, "Invalid citizenship value")

    @field_validator("has_experience")
    @classmethod
    def _has_experience(cls, v: str) -> str:
        return _one_of(v, YES_NO, "Experience must be YES or NO")

    @field_validator("code_95")
    @classmethod
    def _code_95(cls, v: str) -> str:
        return _one_of(v, CODE_95_OPTIONS, "Invalid Code 95 value")

    @field_validator("start_date")
    @classmethod
    def _start_date(cls, v: str) -> str:
        if not DATE_PATTERN.fullmatch(v):
            raise ValueError("Date must be in YYYY-MM-DD format")
        return v

    @field_validator("vacancy_id", mode="before")
    @classmethod
    def _vacancy_id(cls, v: Any) -> Any:
        return _numeric_string_to_int(v, "Vacancy ID must be numeric")

    def to_crm_payload(self) -> dict:
        return self.model_dump(exclude={"website", "honeypot"}, exclude_none=True)


class ApplicationForm(BaseModel):
    """Full application (``POST /api/submit-application``).

    ``token`` identifies the candidate record created from an earlier lead;
    it goes into the CRM URL, not the body.
    """

    token: str = Field(min_length=10)
    first_name: str
    last_name: str
    email: str
    phone: str
    viber_phone: str | None = None
    age: int = Field(ge=21, le=70)
    ce_experience_years: str = Field(max_length=10)
    europe_experience_years: str = Field(max_length=10)
    pesel_status: str
    medical_certificate: str
    work_schedule: str = Field(max_length=100)
    truck_brands: str = Field(max_length=200)
    trailer_types: str = Field(max_length=200)
    countries_driven: str = Field(max_length=500)
    last_employer: str | None = Field(default=None, max_length=200)
    acceptance: StrictBool
    website: str | None = Field(default=None, max_length=0)
    honeypot: str | None = Field(default=None, max_length=0)

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, v: str) -> str:
        return _clean_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, v: str) -> str:
        return _clean_name(v, "Last name")

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return _clean_phone(v, "Phone")

    @field_validator("viber_phone")
    @classmethod
    def _viber_phone(cls, v: str | None) -> str | None:
        if not v:
            return v
        return _clean_phone(v, "Viber phone")

    @field_validator("age", mode="before")
    @classmethod
    def _age(cls, v: Any) -> Any:
        return _numeric_string_to_int(v, "Age must be a number")

    @field_validator("pesel_status")
    @classmethod
    def _pesel_status(cls, v: str) -> str:
        return _one_of(v, YES_NO, "PESEL status must be YES or NO")

    @field_validator("medical_certificate")
    @classmethod
    def _medical_certificate(cls, v: str) -> str:
        return _one_of(v, YES_NO, "Medical certificate must be YES or NO")

    @field_validator("acceptance")
    @classmethod
    def _acceptance(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must accept data processing consent")
        return v

    def to_crm_payload(self) -> dict:
        return self.model_dump(exclude={"token", "website", "honeypot"}, exclude_none=True)


def format_validation_errors(exc: ValidationError) -> list[dict]:
    """Flatten a pydantic error into ``[{"field": ..., "message": ...}]``."""
    errors = []
    for err in exc.errors():
        message = err["msg"]
        # Custom ValueErrors are prefixed by pydantic
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({
            "field": ".".join(str(part) for part in err["loc"]),
            "message": message,
        })
    return errors
