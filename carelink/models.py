"""Data models for the client."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

ROLES = ("parent", "helper", "admin")
SIGNUP_ROLES = ("parent", "helper")


@dataclass(frozen=True)
class UserSummary:
    """Snapshot of the logged-in user cached at login time."""

    user_id: str
    name: str
    user_type: str
    email: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSummary":
        """Build from a backend or cached record. Raises KeyError/ValueError on bad shape."""
        user_type = str(data["user_type"]).lower()
        if user_type not in ROLES:
            raise ValueError(f"Unknown user_type: {data['user_type']!r}")
        return cls(
            user_id=str(data["user_id"]),
            name=str(data.get("name") or ""),
            user_type=user_type,
            email=data.get("email"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"user_id": self.user_id, "name": self.name, "user_type": self.user_type}
        if self.email is not None:
            data["email"] = self.email
        return data


@dataclass(frozen=True)
class Session:
    """Persisted auth state: the token is the user id as a string."""

    token: str
    user: UserSummary


@dataclass
class LoginResponse:
    """Parsed body of POST /login.php."""

    success: bool
    message: str
    user_type: Optional[str] = None
    reason: Optional[str] = None
    user: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class LoginAttemptState:
    attempts_left: int
    is_locked: bool


class OutcomeKind(Enum):
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"
    LOCKED = "locked"
    BUSY = "busy"
    CONNECTION_ERROR = "connection_error"


@dataclass
class LoginOutcome:
    """Result of one credential submission through a LoginGuard."""

    kind: OutcomeKind
    title: str
    message: str
    attempts_left: int
    user: Optional[UserSummary] = None
    locked_now: bool = False
    clear_credentials: bool = False
    # Role reported by the backend; set for pending accounts, which carry no user record
    user_type: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.PENDING)


@dataclass(frozen=True)
class AuditLogEntry:
    """Server-owned audit event. Read-only on the client."""

    log_id: str
    action: str
    username: str
    role: str
    status: str
    timestamp: str
    ip_address: Optional[str] = None
    device_info: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditLogEntry":
        return cls(
            log_id=str(data.get("log_id", "")),
            action=str(data.get("action") or ""),
            username=str(data.get("username") or ""),
            role=str(data.get("role") or ""),
            status=str(data.get("status") or ""),
            timestamp=str(data.get("timestamp") or ""),
            ip_address=data.get("ip_address"),
            device_info=data.get("device_info"),
        )


@dataclass(frozen=True)
class ActivityEntry:
    """A row of a user's own activity trail."""

    action: str
    timestamp: str
    details: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActivityEntry":
        return cls(
            action=str(data.get("action") or ""),
            timestamp=str(data.get("timestamp") or ""),
            details=data.get("details"),
        )

    @property
    def label(self) -> str:
        if not self.action:
            return "UNKNOWN"
        return self.action.replace("_", " ", 1).upper()


@dataclass(frozen=True)
class ManagedUser:
    """An account row on the admin user management listing."""

    user_id: str
    name: str
    email: str
    user_type: str
    status: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ManagedUser":
        return cls(
            user_id=str(data.get("user_id", "")),
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            user_type=str(data.get("user_type") or ""),
            status=str(data.get("status") or ""),
        )


@dataclass(frozen=True)
class HelperStats:
    profile_views: int = 0
    job_applications: int = 0
    pending_interviews: int = 0
    profile_completeness: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HelperStats":
        return cls(
            profile_views=int(data.get("profile_views") or 0),
            job_applications=int(data.get("job_applications") or 0),
            pending_interviews=int(data.get("pending_interviews") or 0),
            profile_completeness=int(data.get("profile_completeness") or 0),
        )


@dataclass(frozen=True)
class ParentStats:
    active_jobs: int = 0
    applications: int = 0
    hired: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParentStats":
        return cls(
            active_jobs=int(data.get("active_jobs", data.get("activeJobs")) or 0),
            applications=int(data.get("applications") or 0),
            hired=int(data.get("hired") or 0),
        )


@dataclass
class ProfileBundle:
    """Body of GET /{role}/get_profile.php."""

    user: Dict[str, Any]
    profile: Dict[str, Any]
    skills: List[Any] = field(default_factory=list)
    job_stats: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentUpload:
    """A local file bound to one of the backend's document slots."""

    slot: str
    path: str
    content_type: Optional[str] = None
