import pytest

from tradingroom.utils.role_permissions import (
    BUILTIN_ROLES,
    ROLE_ADMIN,
    ROLE_FREE,
    ROLE_PREMIUM,
    RoleEnum,
    get_builtin_role_spec,
    is_builtin_role_name,
    normalize_role_name,
    validate_color,
)


class TestBuiltinRoles:
    def test_exactly_one_default_role(self):
        defaults = [name for name, spec in BUILTIN_ROLES.items() if spec["is_default"]]
        assert defaults == [ROLE_FREE]

    def test_only_admin_role_is_admin(self):
        admins = [name for name, spec in BUILTIN_ROLES.items() if spec["is_admin"]]
        assert admins == [ROLE_ADMIN]

    def test_enum_matches_builtin_names(self):
        assert {r.value for r in RoleEnum} == set(BUILTIN_ROLES)

    def test_spec_is_a_copy(self):
        spec = get_builtin_role_spec(ROLE_PREMIUM)
        spec["color"] = "#000000"
        assert BUILTIN_ROLES[ROLE_PREMIUM]["color"] == "#FFD700"

    def test_unknown_builtin_raises(self):
        with pytest.raises(ValueError, match="Unknown built-in role"):
            get_builtin_role_spec("moderator")

    @pytest.mark.parametrize("name,expected", [
        ("free", True),
        (" Premium ", True),
        ("admin", True),
        ("moderator", False),
        ("", False),
        (None, False),
    ])
    def test_is_builtin_role_name(self, name, expected):
        assert is_builtin_role_name(name) is expected


class TestRoleValidation:
    def test_normalize_strips_whitespace(self):
        assert normalize_role_name("  Analysts ") == "Analysts"

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_empty_names_rejected(self, name):
        with pytest.raises(ValueError, match="must not be empty"):
            normalize_role_name(name)

    def test_long_name_rejected(self):
        with pytest.raises(ValueError, match="at most"):
            normalize_role_name("x" * 51)

    @pytest.mark.parametrize("color", [None, "#FFD700", "#00ff7f"])
    def test_valid_colors(self, color):
        validate_color(color)

    @pytest.mark.parametrize("color", ["gold", "#FFF", "FFD700", "#GGGGGG"])
    def test_invalid_colors(self, color):
        with pytest.raises(ValueError, match="Invalid color"):
            validate_color(color)
