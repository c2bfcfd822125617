"""Role hierarchy tests."""

import pytest

from storefront.models.admin_user import Role


@pytest.mark.parametrize(
    "role,minimum,expected",
    [
        (Role.ADMIN, Role.VIEWER, True),
        (Role.ADMIN, Role.EDITOR, True),
        (Role.ADMIN, Role.ADMIN, True),
        (Role.EDITOR, Role.VIEWER, True),
        (Role.EDITOR, Role.EDITOR, True),
        (Role.EDITOR, Role.ADMIN, False),
        (Role.VIEWER, Role.VIEWER, True),
        (Role.VIEWER, Role.EDITOR, False),
        (Role.VIEWER, Role.ADMIN, False),
    ],
)
def test_satisfies(role, minimum, expected):
    assert role.satisfies(minimum) is expected


def test_at_least_lists_most_privileged_first():
    assert Role.at_least(Role.VIEWER) == [Role.ADMIN, Role.EDITOR, Role.VIEWER]
    assert Role.at_least(Role.EDITOR) == [Role.ADMIN, Role.EDITOR]
    assert Role.at_least(Role.ADMIN) == [Role.ADMIN]


def test_roles_parse_from_their_wire_values():
    assert Role("viewer") is Role.VIEWER
    with pytest.raises(ValueError):
        Role("superuser")
