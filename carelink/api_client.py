"""Client for interacting with the CareLink backend API."""

import json
import logging
import mimetypes
import os
from contextlib import ExitStack
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests
from requests.adapters import HTTPAdapter, Retry

from carelink.errors import BackendError, TransportError
from carelink.models import (
    ActivityEntry,
    AuditLogEntry,
    DocumentUpload,
    LoginResponse,
    ManagedUser,
    ProfileBundle,
)

REDACTED_FIELDS = ("password", "confirm_password")

UPLOAD_ENDPOINTS = {
    "helper": "helper/upload_documents.php",
    "parent": "parent/upload_document.php",
}


class CareLinkClient:
    """Client for interacting with the CareLink backend API"""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15,
        retry_total: int = 3,
        user_agent: str = "CareLink Python Client/1.0",
        debug: bool = False,
        session: Optional[requests.Session] = None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        if not base_url:
            self.logger.critical("Missing API base URL at client initialization.")
            raise ValueError("Missing API base URL")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.debug = debug
        self.session = session or requests.Session()
        self._setup_session(retry_total, user_agent)

    def _setup_session(self, retry_total: int, user_agent: str) -> None:
        """Setup the session with default headers and retries"""
        self.logger.debug("Setting up requests session with headers and retries.")
        self.session.headers.update(
            {"User-Agent": user_agent, "Accept": "application/json"}
        )
        # urllib3 only retries idempotent methods by default, so POSTs are sent once
        retry_strategy = Retry(
            total=retry_total, backoff_factor=1, status_forcelist=[429, 500, 502, 503, 504]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _log_api_call(
        self,
        method: str,
        url: str,
        payload: Optional[Dict[str, Any]] = None,
        response: Optional[requests.Response] = None,
    ) -> None:
        """Log API calls in debug mode"""
        if not self.debug:
            return

        safe_payload = payload
        if payload:
            safe_payload = {
                k: ("***REDACTED***" if k in REDACTED_FIELDS else v)
                for k, v in payload.items()
            }

        log_data = {
            "method": method,
            "url": url,
            "payload": safe_payload,
            "status_code": response.status_code if response is not None else None,
            "response_body": None,
        }
        if response is not None:
            log_data["response_body"] = response.text[:1000]

        self.logger.debug(
            f"CareLink API Call: {json.dumps(log_data, indent=2, default=str)}"
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises TransportError on network failure, non-2xx status or a body that
        is not valid JSON.
        """
        url = self._url(path)
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                data=data,
                files=files,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            self.logger.error(f"Timeout calling {method} {url}: {str(e)}")
            raise TransportError("Request timed out.") from e
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Network error calling {method} {url}: {str(e)}")
            raise TransportError(f"Network error: {str(e)}") from e

        self._log_api_call(method, url, payload=json_body or data or params, response=response)

        if not 200 <= response.status_code < 300:
            self.logger.error(
                f"{method} {url} failed with status {response.status_code}"
            )
            self.logger.debug(f"Raw failure response: {response.text[:500]}")
            raise TransportError(
                f"Server returned status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            self.logger.error(
                f"Failed to parse JSON from {method} {url}: {str(e)}"
            )
            self.logger.debug(f"Raw response text: {response.text[:500]}")
            raise TransportError("Server returned an invalid response.") from e

    def _expect_dict(self, body: Any, path: str) -> Dict[str, Any]:
        if not isinstance(body, dict):
            self.logger.error(
                f"Unexpected response structure from {path}: {type(body).__name__}"
            )
            raise TransportError(f"Unexpected response structure from {path}")
        return body

    def _expect_list(self, body: Any, path: str) -> List[Any]:
        if not isinstance(body, list):
            self.logger.error(
                f"Expected a list from {path}, got {type(body).__name__}"
            )
            raise TransportError(f"Unexpected response structure from {path}")
        return body

    def _mutation_result(self, body: Any, path: str, default_failure: str) -> Tuple[bool, str]:
        result = self._expect_dict(body, path)
        success = bool(result.get("success"))
        message = result.get("message") or ("" if success else default_failure)
        if success:
            self.logger.info(f"{path} succeeded: {message}")
        else:
            self.logger.warning(f"{path} reported failure: {message}")
        return success, message

    # --- Authentication ---

    def login(self, email: str, password: str) -> LoginResponse:
        """Check credentials against /login.php"""
        self.logger.info(f"Attempting login for {email}")
        body = self._expect_dict(
            self._request(
                "POST", "login.php", json_body={"email": email, "password": password}
            ),
            "login.php",
        )
        user = body.get("user") if isinstance(body.get("user"), dict) else None
        user_type = body.get("user_type") or (user or {}).get("user_type")
        response = LoginResponse(
            success=bool(body.get("success")),
            message=body.get("message") or "",
            user_type=str(user_type).lower() if user_type else None,
            reason=body.get("reason"),
            user=user,
        )
        self.logger.info(
            f"Login response for {email}: success={response.success}, reason={response.reason}"
        )
        return response

    def signup(
        self, name: str, email: str, user_type: str, password: str
    ) -> Tuple[bool, str]:
        """Register a new parent or helper account"""
        self.logger.info(f"Submitting signup for {email} as {user_type}")
        body = self._request(
            "POST",
            "signup.php",
            json_body={
                "name": name,
                "email": email,
                "user_type": user_type,
                "password": password,
            },
        )
        return self._mutation_result(body, "signup.php", "Try again.")

    def logout(self, user_id: str) -> Tuple[bool, str]:
        """Tell the backend the user logged out (audit trail)"""
        body = self._request("POST", "logout.php", json_body={"user_id": user_id})
        return self._mutation_result(body, "logout.php", "Logout failed.")

    # --- Profiles and stats ---

    def get_stats(self, role: str, user_id: str) -> Dict[str, Any]:
        """Fetch dashboard stats. Returns the 'stats' object; raises BackendError when success is false."""
        path = f"{role}/get_stats.php"
        body = self._expect_dict(
            self._request("GET", path, params={"user_id": user_id}), path
        )
        if not body.get("success"):
            raise BackendError(body.get("message") or "Failed to load stats.")
        stats = body.get("stats")
        if not isinstance(stats, dict):
            raise TransportError(f"Unexpected response structure from {path}")
        return stats

    def get_profile(self, role: str, user_id: str) -> ProfileBundle:
        path = f"{role}/get_profile.php"
        body = self._expect_dict(
            self._request("GET", path, params={"user_id": user_id}), path
        )
        if not body.get("success"):
            raise BackendError(body.get("message") or "Failed to load profile data.")
        return ProfileBundle(
            user=body.get("user") or {},
            profile=body.get("profile") or {},
            skills=body.get("skills") or [],
            job_stats=body.get("job_stats") or {},
        )

    def update_profile(
        self,
        role: str,
        user_id: str,
        fields: Dict[str, Any],
        image_path: Optional[str] = None,
    ) -> Tuple[bool, str]:
        """Submit the profile form as multipart/form-data"""
        path = f"{role}/update_profile.php"
        form = {"user_id": user_id}
        for key, value in fields.items():
            if isinstance(value, (list, dict)):
                form[key] = json.dumps(value)
            elif isinstance(value, bool):
                form[key] = "1" if value else "0"
            else:
                form[key] = str(value)

        self.logger.info(f"Updating {role} profile for user {user_id}")
        with ExitStack() as stack:
            files = None
            if image_path:
                files = {"profile_image": self._file_part(stack, image_path)}
            body = self._request("POST", path, data=form, files=files)
        return self._mutation_result(body, path, "Save failed")

    def get_reference_skills(self) -> List[Any]:
        path = "helper/get_ref_skills.php"
        body = self._request("GET", path)
        if isinstance(body, dict):
            skills = body.get("skills", [])
        else:
            skills = body
        return self._expect_list(skills, path)

    # --- Documents ---

    def get_documents(self, role: str, user_id: str) -> Any:
        path = f"{role}/get_documents.php"
        body = self._expect_dict(
            self._request("GET", path, params={"user_id": user_id}), path
        )
        if not body.get("success"):
            raise BackendError(body.get("message") or "Failed to fetch documents")
        return body.get("documents") or []

    def upload_documents(
        self, role: str, user_id: str, documents: Sequence[DocumentUpload]
    ) -> Tuple[bool, str]:
        """Upload verification documents as multipart/form-data"""
        path = UPLOAD_ENDPOINTS.get(role)
        if path is None:
            raise ValueError(f"Document upload is not available for role {role!r}")

        self.logger.info(
            f"Uploading {len(documents)} document(s) for {role} user {user_id}"
        )
        with ExitStack() as stack:
            files = {
                doc.slot: self._file_part(stack, doc.path, doc.content_type)
                for doc in documents
            }
            body = self._request("POST", path, data={"user_id": user_id}, files=files)
        return self._mutation_result(body, path, "Failed to upload documents. Please try again.")

    @staticmethod
    def _file_part(stack: ExitStack, file_path: str, content_type: Optional[str] = None):
        name = os.path.basename(file_path)
        mime = content_type or mimetypes.guess_type(name)[0] or "image/jpeg"
        handle = stack.enter_context(open(file_path, "rb"))
        return (name, handle, mime)

    # --- Logs ---

    def get_audit_logs(self) -> List[AuditLogEntry]:
        """Fetch every audit entry. The endpoint returns a bare array."""
        path = "admin_get_logs.php"
        body = self._expect_list(self._request("GET", path), path)
        entries = [AuditLogEntry.from_dict(row) for row in body if isinstance(row, dict)]
        self.logger.info(f"Fetched {len(entries)} audit log entries.")
        return entries

    def get_activity_log(self, user_id: str) -> List[ActivityEntry]:
        path = "logtrail.php"
        body = self._expect_list(
            self._request("GET", path, params={"user_id": user_id}), path
        )
        return [ActivityEntry.from_dict(row) for row in body if isinstance(row, dict)]

    # --- Admin user management ---

    def get_users(self, pending_only: bool = False) -> List[ManagedUser]:
        path = "admin_get_users.php"
        params = {"status": "pending"} if pending_only else None
        body = self._expect_list(self._request("GET", path, params=params), path)
        return [ManagedUser.from_dict(row) for row in body if isinstance(row, dict)]

    def update_user_status(
        self, target_user_id: str, new_status: str, admin_id: str
    ) -> Tuple[bool, str]:
        """Approve or suspend an account; admin_id is recorded by the backend"""
        self.logger.info(
            f"Admin {admin_id} setting status of user {target_user_id} to {new_status}"
        )
        body = self._request(
            "POST",
            "admin_update_status.php",
            json_body={
                "target_user_id": target_user_id,
                "new_status": new_status,
                "admin_id": admin_id,
            },
        )
        return self._mutation_result(body, "admin_update_status.php", "Could not update status.")
