"""
Role parsing and the role table.
"""

import logging
import pytest

from edutrack_backend.api.exceptions import UnauthorizedException
from edutrack_backend.auth.gateway import IdentityClaims
from edutrack_backend.permissions.auth import PrincipalBuilder
from edutrack_backend.permissions.principal import ROLE_PERMISSIONS, Principal, Role


class TestRoleParsing:

    @pytest.mark.parametrize("value,expected", [
        ("SuperAdmin", Role.super_admin),
        ("SUPER_ADMIN", Role.super_admin),
        ("super_admin", Role.super_admin),
        ("InstitutionAdmin", Role.institution_admin),
        ("institution-admin", Role.institution_admin),
        ("teacher", Role.teacher),
        ("TEACHER", Role.teacher),
        ("Parent", Role.parent),
    ])
    def test_legacy_spellings_map_to_one_role(self, value, expected):
        assert Role.from_claim(value) == expected

    def test_missing_claim_defaults_to_student(self):
        assert Role.from_claim(None) == Role.student
        assert Role.from_claim("") == Role.student

    def test_unknown_role_is_rejected(self):
        with pytest.raises(ValueError):
            Role.from_claim("Janitor")

    def test_enum_is_closed(self):
        assert {r.value for r in Role} == {"SuperAdmin", "InstitutionAdmin", "Teacher", "Student", "Parent"}


class TestPrincipal:

    def test_super_admin_is_admin(self):
        assert Principal(user_id="a", role=Role.super_admin).is_admin
        assert not Principal(user_id="i", role=Role.institution_admin).is_admin

    def test_same_institution_requires_a_tenant(self):
        admin = Principal(user_id="i", role=Role.institution_admin, institution_id=None)
        assert not admin.same_institution(None)

        admin = Principal(user_id="i", role=Role.institution_admin, institution_id="inst-1")
        assert admin.same_institution("inst-1")
        assert not admin.same_institution("inst-2")

    def test_has_role_accepts_sets(self):
        teacher = Principal(user_id="t", role=Role.teacher)
        assert teacher.has_role(Role.teacher)
        assert teacher.has_role({Role.super_admin, Role.teacher})
        assert not teacher.has_role(Role.student, Role.parent)

    def test_principal_round_trips_through_json(self):
        parent = Principal(user_id="p", email="p@example.org", role=Role.parent, institution_id="inst-1", child_id="s1")
        assert Principal.model_validate_json(parent.model_dump_json()) == parent


class TestRoleTable:

    def test_only_owning_teacher_role_may_record_progress(self):
        assert ROLE_PERMISSIONS["enrollments"]["progress"] == frozenset({Role.teacher})

    def test_user_deletion_is_super_admin_only(self):
        assert ROLE_PERMISSIONS["users"]["delete"] == frozenset({Role.super_admin})

    def test_parents_have_no_course_access(self):
        parent = Principal(user_id="p", role=Role.parent)
        for action in ROLE_PERMISSIONS["courses"]:
            assert not parent.permitted("courses", action)

    def test_claim_management_is_super_admin_only(self):
        for role in Role:
            allowed = Principal(user_id="x", role=role).permitted("claims", "set")
            assert allowed == (role == Role.super_admin)

    def test_unknown_resource_is_denied(self):
        assert not Principal(user_id="a", role=Role.super_admin).permitted("grades", "list")


class TestPrincipalBuilder:

    def test_missing_role_claim_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="edutrack_backend.permissions.auth"):
            principal = PrincipalBuilder.build(IdentityClaims(subject="u1", email="u1@example.org"))

        assert principal.role == Role.student
        assert "no role claim" in caplog.text

    def test_present_role_claim_is_not_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="edutrack_backend.permissions.auth"):
            principal = PrincipalBuilder.build(IdentityClaims(subject="u1", role="Teacher", institution_id="inst-1"))

        assert principal.role == Role.teacher
        assert principal.institution_id == "inst-1"
        assert caplog.text == ""

    def test_unknown_role_claim_is_unauthorized(self):
        with pytest.raises(UnauthorizedException):
            PrincipalBuilder.build(IdentityClaims(subject="u1", role="Janitor"))
