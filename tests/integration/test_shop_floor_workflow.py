# =============================================================================
# tests/integration/test_shop_floor_workflow.py
# Integration Tests: end-to-end shop-floor flows on both backends
# =============================================================================

from dataclasses import replace

import pytest
from postgrest.exceptions import APIError

from shopfloor_core.config import AppConfig, RemoteConfig
from shopfloor_core.data.models import Job, JobStatus
from shopfloor_core.errors import PermissionDeniedError, handle_error
from shopfloor_core.offline import (
    BackendContext,
    ConnectivityMonitor,
    LocalKeys,
    NO_CREDENTIALS_MESSAGE,
    build_data_service,
)


@pytest.fixture(params=["local", "remote"])
def service(request, local_service, remote_service):
    """Run each flow on both backends"""
    return local_service if request.param == "local" else remote_service


class TestJobLifecycle:

    def test_start_and_stop_timer(self, service, clock):
        job = service.save_job(Job(id="job-a", po_number="PO-100", part_number="X-1", quantity=10))

        log = service.start_time_log(job.id, "user-u", "Ursula", "Cutting")
        assert service.get_job_by_id(job.id).status == JobStatus.IN_PROGRESS
        assert log.end_time is None

        clock.advance(90)
        stopped = service.stop_time_log(log.id)

        assert stopped.end_time == clock.now
        assert stopped.duration_minutes == 2

    @pytest.mark.parametrize("offset_ms,expected", [(-60_000, 0), (0, 0), (8 * 3_600_000 + 29_000, 480)])
    def test_duration_for_any_stop_time(self, service, clock, offset_ms, expected):
        log = service.start_time_log("job-a", "user-u", "Ursula", "Cutting")
        clock.now = log.start_time + offset_ms

        assert service.stop_time_log(log.id).duration_minutes == expected

    def test_completed_iff_timestamp(self, service):
        job = service.save_job(Job(id="job-b", po_number="PO-200"))

        for step in (service.complete_job, service.reopen_job, service.complete_job):
            current = step(job.id)
            assert (current.status == JobStatus.COMPLETED) == (current.completed_at is not None)

        edited = service.save_job(replace(service.get_job_by_id(job.id), status=JobStatus.HOLD))
        assert edited.completed_at is None

    def test_delete_cascade_leaves_other_jobs_logs(self, service, recorder):
        service.save_job(Job(id="job-a", po_number="PO-A"))
        service.save_job(Job(id="job-b", po_number="PO-B"))
        service.start_time_log("job-a", "u1", "Ann", "Cutting")
        other = service.start_time_log("job-b", "u2", "Ben", "QC")

        service.delete_job("job-a")

        feed = recorder()
        sub = service.subscribe_logs(feed)
        assert [log.id for log in feed.last] == [other.id]
        sub.unsubscribe()

    def test_login_rules(self, service, sample_user):
        service.save_user(sample_user)

        assert service.login_user("mlopez", "4321").id == sample_user.id
        assert service.login_user("mlopez", "0000") is None

        service.save_user(replace(sample_user, is_active=False))
        assert service.login_user("mlopez", "4321") is None


class TestPermissionDeniedOnSave:

    def test_failure_is_surfaced_not_redirected(self, remote_service, fake_remote):
        fake_remote.failures["set"] = APIError({"message": "permission denied for table jobs", "code": "42501"})

        with pytest.raises(PermissionDeniedError) as exc:
            remote_service.save_job(Job(id="job-z", po_number="PO-Z"))

        assert remote_service.status.connected is False
        assert remote_service.status.error.startswith("Permission Denied")
        assert remote_service.local_store.read(LocalKeys.JOBS) is None
        assert handle_error(exc.value).message == "Permission Denied: Check database access policies."


class TestStartup:

    def test_local_only_without_credentials(self, tmp_path):
        config = AppConfig(db_path=tmp_path / "startup.db", pin_rounds=4)
        service = build_data_service(config, background_check=False)

        assert not service.is_online
        assert service.status.error == NO_CREDENTIALS_MESSAGE
        assert service.login_user("jdoe", "1234") is not None
        service.close()

    def test_failed_health_check_routes_everything_local(self, local_store, fake_remote, make_service):
        fake_remote.failures["set"] = APIError({"message": "permission denied", "code": "42501"})
        context = BackendContext(local_store)
        config = AppConfig(remote=RemoteConfig(url="https://demo.supabase.co", key="anon"))
        ConnectivityMonitor(context, config, remote_factory=lambda r: fake_remote).initialize(background=False)
        service = make_service(context)

        service.save_job(Job(id="job-l", po_number="PO-L"))

        assert context.remote is None
        assert local_store.read(LocalKeys.JOBS)[0]["id"] == "job-l"
        assert not fake_remote.collections.get("jobs")

    def test_saved_remote_config_round_trip(self, local_service):
        local_service.save_remote_config(RemoteConfig(url="https://saved.supabase.co", key="k"))
        assert local_service.local_store.read(LocalKeys.REMOTE_CONFIG) == {
            "url": "https://saved.supabase.co",
            "key": "k",
        }

        local_service.clear_remote_config()
        assert local_service.local_store.read(LocalKeys.REMOTE_CONFIG) is None
