"""Command handlers for a user's own dashboard, profile, documents and activity."""

import logging
from typing import Any, Dict, List

from carelink.commands.auth import session_required
from carelink.dashboard import load_dashboard, render_dashboard
from carelink.messaging import get_message
from carelink.models import DocumentUpload, ProfileBundle
from carelink.validation import (
    DOCUMENT_SLOTS,
    HELPER_PROFILE_FIELDS,
    PARENT_PROFILE_FIELDS,
    parse_profile_fields,
    truthy,
    validate_document_selection,
    validate_helper_profile,
    validate_parent_profile,
)

logger = logging.getLogger(__name__)

MEMBER_ROLES = ("parent", "helper")


def _member_only(app, session) -> bool:
    if session.user.user_type in MEMBER_ROLES:
        return True
    app.notify(get_message("general.error_title"), get_message("profile.not_available"))
    return False


@session_required
def dashboard_command(app, args, session) -> int:
    view = load_dashboard(app.client, session.user)
    app.echo(render_dashboard(view))
    return 1 if view.error else 0


def skill_names(skills: List[Any]) -> List[str]:
    names = []
    for skill in skills:
        if isinstance(skill, dict):
            name = skill.get("skill_name") or skill.get("name")
        else:
            name = skill
        if name:
            names.append(str(name))
    return names


def _yes_no(value: Any) -> str:
    return "Yes" if truthy(value) else "No"


def _review_count(value: Any) -> int:
    """Number of reviews, or 0 when the server sends something that is not a count."""
    if value in (None, ""):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unreadable rating_count: {value!r}")
        return 0


def render_profile(role: str, bundle: ProfileBundle) -> str:
    user, profile = bundle.user, bundle.profile
    location = ", ".join(
        str(profile[k]) for k in ("address", "barangay", "municipality") if profile.get(k)
    )
    lines = [
        f"{user.get('name', '')} ({role})",
        f"  Email:    {user.get('email', '')}",
        f"  Contact:  {profile.get('contact_number') or '-'}",
        f"  Location: {location or '-'}",
    ]
    if role == "helper":
        lines += [
            f"  Bio:        {profile.get('bio') or '-'}",
            f"  Birth date: {profile.get('birth_date') or '-'}",
            f"  Education:  {profile.get('education_level') or '-'}",
            f"  Experience: {profile.get('experience_years') or 0} years",
            f"  Expected salary: {profile.get('expected_salary_min') or '-'} / {profile.get('salary_period') or '-'}",
            f"  Skills:     {', '.join(skill_names(bundle.skills)) or '-'}",
        ]
        count = _review_count(profile.get("rating_count"))
        if count > 0:
            lines.append(
                f"  Rating:     {profile.get('rating_average')} "
                f"(based on {count} {'review' if count == 1 else 'reviews'})"
            )
        for key, value in bundle.job_stats.items():
            lines.append(f"  {key.replace('_', ' ').capitalize()}: {value}")
    else:
        children = _yes_no(profile.get("has_children"))
        if truthy(profile.get("has_children")) and profile.get("children_ages"):
            children += f" (Ages: {profile['children_ages']})"
        pets = _yes_no(profile.get("has_pets"))
        if truthy(profile.get("has_pets")) and profile.get("pet_details"):
            pets += f" ({profile['pet_details']})"
        lines += [
            f"  Household: {profile.get('household_size') or 0} members",
            f"  Children:  {children}",
            f"  Elderly:   {_yes_no(profile.get('has_elderly'))}",
            f"  Pets:      {pets}",
        ]
    return "\n".join(lines)


@session_required
def profile_command(app, args, session) -> int:
    if not _member_only(app, session):
        return 1
    role = session.user.user_type
    bundle = app.client.get_profile(role, session.user.user_id)
    app.echo(render_profile(role, bundle))
    return 0


@session_required
def edit_profile_command(app, args, session) -> int:
    """Merge the given fields over the current profile, validate, and save."""
    if not _member_only(app, session):
        return 1
    role = session.user.user_type
    updates = parse_profile_fields(role, args.fields or [])

    current = app.client.get_profile(role, session.user.user_id)
    allowed = HELPER_PROFILE_FIELDS if role == "helper" else PARENT_PROFILE_FIELDS
    fields: Dict[str, Any] = {
        k: v for k, v in current.profile.items() if k in allowed and v is not None
    }
    fields.update(updates)

    if role == "helper":
        skills = args.skills if args.skills else skill_names(current.skills)
        validate_helper_profile(fields, skills)
        fields["skills"] = skills
    else:
        validate_parent_profile(fields)
        for flag in ("has_children", "has_elderly", "has_pets"):
            if flag in fields:
                fields[flag] = truthy(fields[flag])

    success, message = app.client.update_profile(
        role, session.user.user_id, fields, image_path=args.image
    )
    if success:
        app.notify(get_message("general.success_title"), message or get_message("profile.saved_default"))
        return 0
    app.notify(get_message("general.failed_title"), message or get_message("profile.save_failed_default"))
    return 1


def _format_documents(documents: Any) -> List[str]:
    if isinstance(documents, dict):
        return [f"  {k}: {v}" for k, v in documents.items()]
    rows = []
    for doc in documents:
        if isinstance(doc, dict):
            rows.append("  " + "  ".join(f"{k}={v}" for k, v in doc.items()))
        else:
            rows.append(f"  {doc}")
    return rows


@session_required
def documents_command(app, args, session) -> int:
    if not _member_only(app, session):
        return 1
    documents = app.client.get_documents(session.user.user_type, session.user.user_id)
    rows = _format_documents(documents)
    app.echo("\n".join(rows) if rows else get_message("documents.empty"))
    return 0


def parse_document_args(pairs: List[str]) -> List[DocumentUpload]:
    uploads = []
    for pair in pairs:
        slot, _, path = pair.partition("=")
        uploads.append(DocumentUpload(slot=slot.strip(), path=path.strip()))
    return uploads


@session_required
def upload_documents_command(app, args, session) -> int:
    if not _member_only(app, session):
        return 1
    role = session.user.user_type
    uploads = parse_document_args(args.files or [])
    validate_document_selection(role, uploads)

    success, message = app.client.upload_documents(role, session.user.user_id, uploads)
    if success:
        app.notify(get_message("general.success_title"), get_message(f"documents.{role}_uploaded"))
        return 0
    app.notify(
        get_message("general.failed_title"),
        message or get_message("documents.upload_failed_default"),
    )
    return 1


@session_required
def skills_command(app, args, session) -> int:
    names = skill_names(app.client.get_reference_skills())
    app.echo("\n".join(names) if names else get_message("profile.no_skills"))
    return 0


@session_required
def activity_command(app, args, session) -> int:
    entries = app.client.get_activity_log(session.token)
    if not entries:
        app.echo(get_message("activity.empty"))
        return 0
    for entry in entries:
        app.echo(f"{entry.timestamp:<20}  {entry.label}")
    return 0


def setup_commands(app, subparsers):
    """Register the profile commands with the app's parser."""
    dashboard = subparsers.add_parser("dashboard", help="Show the dashboard for your role.")
    dashboard.set_defaults(handler=dashboard_command)

    profile = subparsers.add_parser("profile", help="Show your profile.")
    profile.set_defaults(handler=profile_command)

    edit = subparsers.add_parser("edit-profile", help="Update profile fields.")
    edit.add_argument(
        "--set", dest="fields", action="append", metavar="FIELD=VALUE",
        help="Profile field to change; repeat for more fields.",
    )
    edit.add_argument(
        "--skill", dest="skills", action="append", metavar="SKILL",
        help="Helper skill; repeat for more. Replaces the current skill list.",
    )
    edit.add_argument("--image", help="Path to a new profile image.")
    edit.set_defaults(handler=edit_profile_command)

    documents = subparsers.add_parser("documents", help="List your uploaded documents.")
    documents.set_defaults(handler=documents_command)

    slots = ", ".join(f"{role}: {'/'.join(names)}" for role, names in DOCUMENT_SLOTS.items())
    upload = subparsers.add_parser("upload-documents", help="Upload verification documents.")
    upload.add_argument(
        "--file", dest="files", action="append", metavar="SLOT=PATH",
        help=f"Document to upload ({slots}); repeat for more.",
    )
    upload.set_defaults(handler=upload_documents_command)

    skills = subparsers.add_parser("skills", help="List the skills a helper can pick.")
    skills.set_defaults(handler=skills_command)

    activity = subparsers.add_parser("activity", help="Show your activity log.")
    activity.set_defaults(handler=activity_command)
