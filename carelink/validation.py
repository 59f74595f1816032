"""Local form validation. Failures raise ValidationError and never reach the network."""

import os
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

from carelink.errors import ValidationError
from carelink.messaging import get_message
from carelink.models import SIGNUP_ROLES, DocumentUpload

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
UPPERCASE_RE = re.compile(r"[A-Z]")
DIGIT_RE = re.compile(r"[0-9]")
SPECIAL_RE = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")

MIN_PASSWORD_LENGTH = 8

DOCUMENT_SLOTS = {
    "helper": ("philsys_id", "barangay_clearance", "nbi_police_clearance"),
    "parent": ("valid_id",),
}

HELPER_PROFILE_FIELDS = (
    "contact_number",
    "birth_date",
    "gender",
    "address",
    "municipality",
    "barangay",
    "civil_status",
    "bio",
    "languages_spoken",
    "education_level",
    "experience_years",
    "work_type_preference",
    "availability_status",
    "expected_salary_min",
    "salary_period",
)

PARENT_PROFILE_FIELDS = (
    "contact_number",
    "address",
    "municipality",
    "barangay",
    "household_size",
    "has_children",
    "children_ages",
    "has_elderly",
    "has_pets",
    "pet_details",
)


def _fail(title_key: str, message_key: str, **kwargs: Any) -> None:
    raise ValidationError(get_message(message_key, **kwargs), title=get_message(title_key))


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def password_problems(password: str) -> List[str]:
    """Message keys for every strength rule the password breaks, in display order."""
    problems = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append("signup.password_length")
    if not DIGIT_RE.search(password):
        problems.append("signup.password_number")
    if not UPPERCASE_RE.search(password):
        problems.append("signup.password_uppercase")
    if not SPECIAL_RE.search(password):
        problems.append("signup.password_special")
    return problems


def validate_signup(
    name: str, email: str, user_type: str, password: str, confirm_password: str
) -> None:
    """Check the sign-up form; raises ValidationError on the first problem found."""
    if not all([name, email, user_type, password, confirm_password]):
        _fail("signup.missing_fields_title", "signup.missing_fields")
    if not is_valid_email(email):
        _fail("signup.invalid_email_title", "signup.invalid_email")
    if user_type not in SIGNUP_ROLES:
        _fail("signup.invalid_role_title", "signup.invalid_role")
    if password != confirm_password:
        _fail("signup.password_mismatch_title", "signup.password_mismatch")
    problems = password_problems(password)
    if problems:
        _fail("signup.weak_password_title", problems[0])


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _require_contact_and_address(fields: Dict[str, Any]) -> None:
    if _blank(fields.get("contact_number")):
        _fail("profile.invalid_title", "profile.contact_required")
    if any(_blank(fields.get(k)) for k in ("address", "municipality", "barangay")):
        _fail("profile.invalid_title", "profile.address_required")


def validate_helper_profile(fields: Dict[str, Any], skills: Sequence[str]) -> None:
    _require_contact_and_address(fields)
    try:
        salary = float(fields.get("expected_salary_min") or 0)
    except (TypeError, ValueError):
        salary = 0
    if salary <= 0:
        _fail("profile.invalid_title", "profile.salary_required")
    if not skills:
        _fail("profile.invalid_title", "profile.skills_required")


def parse_children_ages(value: str) -> List[int]:
    """'3, 5,8' -> [3, 5, 8]; raises ValueError unless every age is an integer 0..18."""
    ages = []
    for part in value.split(","):
        age = int(part.strip())
        if not 0 <= age <= 18:
            raise ValueError(f"age out of range: {age}")
        ages.append(age)
    return ages


def validate_parent_profile(fields: Dict[str, Any]) -> None:
    _require_contact_and_address(fields)
    children_ages = str(fields.get("children_ages") or "").strip()
    if truthy(fields.get("has_children")) and children_ages:
        try:
            parse_children_ages(children_ages)
        except ValueError:
            _fail("profile.invalid_title", "profile.children_ages_invalid")


def truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def parse_profile_fields(role: str, pairs: Iterable[str]) -> Dict[str, str]:
    """Turn ``key=value`` arguments into a field dict, rejecting unknown keys."""
    allowed = HELPER_PROFILE_FIELDS if role == "helper" else PARENT_PROFILE_FIELDS
    fields = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            _fail("profile.invalid_title", "profile.bad_field_format", value=pair)
        if key not in allowed:
            _fail("profile.invalid_title", "profile.unknown_field", field=key)
        fields[key] = value.strip()
    return fields


def validate_document_selection(
    role: str, documents: Sequence[DocumentUpload], exists=os.path.isfile
) -> None:
    """At least one document, each in a slot valid for the role, each an existing file."""
    if not documents:
        _fail("documents.invalid_title", "documents.none_selected")
    allowed: Optional[tuple] = DOCUMENT_SLOTS.get(role)
    for doc in documents:
        if allowed is None or doc.slot not in allowed:
            _fail("documents.invalid_title", "documents.unknown_slot", slot=doc.slot, role=role)
        if not exists(doc.path):
            _fail("documents.invalid_title", "documents.missing_file", path=doc.path)
