# Overview: Lookups over the permission definitions table.

from .definitions import PERMISSION_DEFINITIONS


def _as_dict(perm) -> dict:
    code, name, description, category = perm
    return {
        "code": code,
        "name": name,
        "description": description,
        "category": category,
    }


def get_all_permission_codes() -> list[str]:
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_category(category) -> list[dict]:
    return [_as_dict(perm) for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code) -> dict | None:
    """Full definition for a permission code, or None if unknown."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return _as_dict(perm)
    return None


def validate_permission_code(code) -> bool:
    return code in get_all_permission_codes()


def describe_permissions(codes) -> dict[str, list[dict]]:
    """Group a set of codes by category, in definition order (used by /auth/permissions)."""
    grouped: dict[str, list[dict]] = {}
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] in codes:
            grouped.setdefault(perm[3], []).append(_as_dict(perm))
    return grouped
