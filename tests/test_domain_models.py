#tests\test_domain_models.py

"""Test domain models and state transitions."""

import os

import pytest

from store_engine.core.models import (
    ImageDigestState,
    InstalledStack,
    Operation,
    OperationAction,
    OperationEvent,
    OperationEventType,
    OperationStatus,
    ProgressDetail,
    clamp_percent,
)


class TestOperation:
    """Test operation state machine."""

    @pytest.fixture
    def operation(self):
        return Operation.new("adguard-home", OperationAction.INSTALL)

    # -------------------------
    # STATE TRANSITION TESTS
    # -------------------------

    def test_initial_state(self, operation):
        """New operations start queued at 0%."""
        assert operation.status == OperationStatus.QUEUED
        assert operation.progress_percent == 0
        assert operation.current_step == "queued"
        assert operation.started_at is None
        assert len(operation.operation_id) == 32

    def test_start_transition(self, operation):
        """Test QUEUED -> RUNNING transition."""
        operation.start()

        assert operation.status == OperationStatus.RUNNING
        assert operation.started_at is not None

    def test_start_twice_fails(self, operation):
        operation.start()

        with pytest.raises(ValueError):
            operation.start()

    def test_advance_requires_running(self, operation):
        with pytest.raises(ValueError):
            operation.advance("render", 8)

    def test_progress_never_decreases(self, operation):
        """A lower percent keeps the previous value but records the step."""
        operation.start()
        operation.advance("pull-images", 40)
        operation.advance("pull-images", 20)

        assert operation.progress_percent == 40
        assert operation.current_step == "pull-images"

    def test_progress_is_clamped(self, operation):
        operation.start()
        operation.advance("weird", 250)

        assert operation.progress_percent == 100

    def test_succeed(self, operation):
        """Test RUNNING -> SUCCESS transition."""
        operation.start()
        operation.advance("finalize", 95)
        operation.succeed()

        assert operation.status == OperationStatus.SUCCESS
        assert operation.progress_percent == 100
        assert operation.current_step == "completed"
        assert operation.error_message is None
        assert operation.finished_at is not None

    def test_fail_keeps_progress_and_step(self, operation):
        """Error keeps the last reported progress and step."""
        operation.start()
        operation.advance("compose-up", 85)
        operation.fail("compose exploded")

        assert operation.status == OperationStatus.ERROR
        assert operation.progress_percent == 85
        assert operation.current_step == "compose-up"
        assert operation.error_message == "compose exploded"
        assert operation.finished_at is not None

    def test_terminal_state_is_write_once(self, operation):
        operation.start()
        operation.succeed()

        with pytest.raises(ValueError):
            operation.fail("late failure")
        with pytest.raises(ValueError):
            operation.succeed()

    def test_to_dict_uses_camel_case(self, operation):
        data = operation.to_dict()

        assert data["id"] == operation.operation_id
        assert data["appId"] == "adguard-home"
        assert data["action"] == "install"
        assert data["status"] == "queued"
        assert data["progressPercent"] == 0
        assert data["startedAt"] is None


class TestClampPercent:

    @pytest.mark.parametrize("value,expected", [(-5, 0), (0, 0), (49.6, 50), (100, 100), (101, 100)])
    def test_clamp(self, value, expected):
        assert clamp_percent(value) == expected


class TestProgressDetail:

    def test_percent_rounded_to_two_decimals(self):
        detail = ProgressDetail.from_counters(1, 3)

        assert detail.percent == 33.33
        assert detail.current == 1
        assert detail.total == 3

    def test_no_percent_without_total(self):
        assert ProgressDetail.from_counters(10, 0).percent is None

    def test_non_numeric_counters_become_zero(self):
        detail = ProgressDetail.from_counters("abc", None)

        assert detail.current == 0
        assert detail.total == 0
        assert detail.percent is None


class TestOperationEvent:

    def test_wire_shape_omits_missing_optionals(self):
        operation = Operation.new("nginx", OperationAction.UNINSTALL)
        operation.start()

        wire = OperationEvent.from_operation(operation, OperationEventType.STARTED).to_wire()

        assert wire["type"] == "started"
        assert wire["operationId"] == operation.operation_id
        assert wire["appId"] == "nginx"
        assert wire["action"] == "uninstall"
        assert wire["status"] == "running"
        assert "message" not in wire
        assert "image" not in wire
        assert "progressDetail" not in wire

    def test_wire_shape_with_pull_detail(self):
        operation = Operation.new("nginx", OperationAction.INSTALL)
        operation.start()

        wire = OperationEvent.from_operation(
            operation,
            OperationEventType.PULL_PROGRESS,
            image="nginx:alpine",
            docker_status="Downloading",
            progress_detail=ProgressDetail.from_counters(50, 100),
        ).to_wire()

        assert wire["type"] == "pull.progress"
        assert wire["image"] == "nginx:alpine"
        assert wire["dockerStatus"] == "Downloading"
        assert wire["progressDetail"] == {"current": 50, "total": 100, "percent": 50.0}


class TestImageDigestState:

    def test_update_available_only_when_both_known_and_different(self):
        assert ImageDigestState("nginx", "sha256:a", "sha256:b").update_available
        assert not ImageDigestState("nginx", "sha256:a", "sha256:a").update_available
        assert not ImageDigestState("nginx", None, "sha256:b").update_available
        assert not ImageDigestState("nginx", "sha256:a", None).update_available


class TestInstalledStack:

    def test_env_path_next_to_compose_file(self):
        stack = InstalledStack(
            app_id="nginx",
            template_name="nginx",
            stack_name="nginx",
            compose_path=os.path.join("data", "nginx", "docker-compose.yml"),
        )

        assert stack.env_path == os.path.join("data", "nginx", ".env")
        assert not stack.is_active()
