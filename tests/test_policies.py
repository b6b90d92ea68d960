"""Unit tests for the project / DPR authorization rules."""

import pytest

from site_progress.auth.policies import (
    can_create_project,
    can_create_report,
    can_delete_project,
    can_read_project,
    can_update_project,
    require,
    restricts_project_list,
)
from site_progress.errors import ForbiddenError
from site_progress.models import Principal, Role

ADMIN = Principal(user_id=1, email="admin@x.com", role=Role.ADMIN)
MANAGER = Principal(user_id=2, email="manager@x.com", role=Role.MANAGER)
WORKER = Principal(user_id=3, email="worker@x.com", role=Role.WORKER)
OTHER = 99


class TestProjectPolicies:
    @pytest.mark.parametrize("principal,allowed", [(ADMIN, True), (MANAGER, True), (WORKER, False)])
    def test_create(self, principal, allowed):
        assert can_create_project(principal) is allowed

    @pytest.mark.parametrize("principal,allowed", [(ADMIN, True), (MANAGER, False), (WORKER, False)])
    def test_delete(self, principal, allowed):
        assert can_delete_project(principal) is allowed

    def test_update_admin_any_project(self):
        assert can_update_project(ADMIN, OTHER) is True

    def test_update_manager_only_own(self):
        assert can_update_project(MANAGER, MANAGER.user_id) is True
        assert can_update_project(MANAGER, OTHER) is False

    def test_update_worker_never(self):
        """Even a worker recorded as creator fails the role check."""
        assert can_update_project(WORKER, WORKER.user_id) is False

    @pytest.mark.parametrize("principal", [ADMIN, MANAGER])
    def test_read_unrestricted_roles(self, principal):
        assert can_read_project(principal, OTHER, has_reported=False) is True

    def test_read_worker(self):
        assert can_read_project(WORKER, OTHER, has_reported=False) is False
        assert can_read_project(WORKER, OTHER, has_reported=True) is True
        assert can_read_project(WORKER, WORKER.user_id, has_reported=False) is True

    def test_list_restriction(self):
        assert restricts_project_list(ADMIN) is False
        assert restricts_project_list(MANAGER) is False
        assert restricts_project_list(WORKER) is True


class TestReportPolicies:
    @pytest.mark.parametrize("principal", [ADMIN, MANAGER])
    def test_create_unrestricted_roles(self, principal):
        assert can_create_report(principal, OTHER) is True

    def test_create_worker_only_on_own_projects(self):
        assert can_create_report(WORKER, WORKER.user_id) is True
        assert can_create_report(WORKER, OTHER) is False


class TestRequire:
    def test_allowed_passes(self):
        require(True, "nope")

    def test_denied_raises_forbidden(self):
        with pytest.raises(ForbiddenError, match="Only admins can delete projects"):
            require(False, "Only admins can delete projects")
