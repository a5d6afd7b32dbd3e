"""Permission keys guarding the wizard API.

Permission naming: `<resource>.<action>`. The identity provider embeds the
effective list in the access token; `admin` satisfies every check.
"""

from __future__ import annotations

ADMIN = "admin"

ALL_PERMISSIONS: set[str] = {
    ADMIN,
    "wizards.read",       # list / view wizards, types, report data
    "wizards.write",      # create, patch, navigate, generate feeds
    "wizards.delete",
    "reports.run",        # trigger report generation
    "feeds.upload",       # upload / validate feed files
}


def has_permission(user_permissions: list[str] | set[str], required: str) -> bool:
    """Check whether a permission set satisfies a requirement."""
    return ADMIN in user_permissions or required in user_permissions
