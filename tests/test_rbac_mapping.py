from actions.helpers import USER_ROLES
from app.routes.hiring import LIST_QUERIES, WRITE_ROLES
from gateway import ENTITY_TYPES


def test_every_collection_has_write_roles() -> None:
    missing = [t for t in ENTITY_TYPES if t not in WRITE_ROLES]
    assert missing == []


def test_write_roles_are_known_roles() -> None:
    unknown = sorted({r for roles in WRITE_ROLES.values() for r in roles} - set(USER_ROLES))
    assert unknown == []


def test_list_queries_point_at_real_methods(service) -> None:
    missing = []
    for (entity, arg), method in LIST_QUERIES.items():
        if method is not None and not callable(getattr(service.group(entity), method, None)):
            missing.append(f"{entity}.{method}")
    assert missing == []
