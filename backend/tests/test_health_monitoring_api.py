"""헬스 모니터링 API 테스트."""
from fastapi.testclient import TestClient

import main
from core.config import get_settings

BASE = "/api/health-monitoring"
JOB = "health-monitoring"


class TestLiveness:
    """liveness 엔드포인트."""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["environment"] == "test"
        assert data["uptime_seconds"] >= 0
        assert "timestamp" in data


class TestNotInitialized:
    """초기화 전에는 503."""

    def test_control_routes_unavailable(self, uninitialized_client):
        for path in ("/stats", "/cron-jobs", "/logs", "/config"):
            response = uninitialized_client.get(f"{BASE}{path}")
            assert response.status_code == 503

        response = uninitialized_client.post(f"{BASE}/trigger")
        assert response.status_code == 503

    def test_liveness_still_served(self, uninitialized_client):
        assert uninitialized_client.get("/api/health").status_code == 200

    def test_bad_log_format_keeps_server_up(self, monitoring_env):
        """HEALTH_LOG_FORMAT 값이 잘못돼도 서버는 뜨고 모니터링 라우트만 503."""
        monitoring_env.setenv("HEALTH_LOG_FORMAT", "xml")
        get_settings.cache_clear()

        with TestClient(main.app) as c:
            assert c.get("/api/health").status_code == 200
            assert c.get(f"{BASE}/stats").status_code == 503


class TestCronJobAPI:
    """작업 조회/제어 API."""

    def test_list_jobs(self, client):
        response = client.get(f"{BASE}/cron-jobs")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["jobs"][0]["id"] == JOB
        assert data["jobs"][0]["name"] == "Health Monitoring"
        assert data["jobs"][0]["enabled"] is True
        assert data["jobs"][0]["next_run"] is not None
        assert data["summary"] == {"running": 0, "stopped": 1, "errors": 0}

    def test_jobs_info(self, client):
        response = client.get(f"{BASE}/cron-jobs/info")
        assert response.status_code == 200
        info = response.json()
        assert len(info) == 1
        assert info[0]["schedule"] == "*/5 * * * *"
        assert info[0]["timezone"] == "UTC"

    def test_get_job(self, client):
        response = client.get(f"{BASE}/cron-jobs/{JOB}")
        assert response.status_code == 200
        assert response.json()["status"] == "stopped"

    def test_unknown_job(self, client):
        response = client.get(f"{BASE}/cron-jobs/missing")
        assert response.status_code == 404
        assert response.json()["detail"] == "Cron job with ID 'missing' not found"

        assert client.post(f"{BASE}/cron-jobs/missing/start").status_code == 404
        assert client.post(f"{BASE}/cron-jobs/missing/stop").status_code == 404
        assert client.post(f"{BASE}/cron-jobs/missing/restart").status_code == 404

    def test_stop_twice(self, client):
        """두 번째 정지는 success=false, 상태는 그대로."""
        first = client.post(f"{BASE}/cron-jobs/{JOB}/stop").json()
        second = client.post(f"{BASE}/cron-jobs/{JOB}/stop").json()

        assert first["success"] is True
        assert second["success"] is False
        assert second["job"]["enabled"] is False
        assert second["job"]["next_run"] is None

    def test_start_after_stop(self, client):
        client.post(f"{BASE}/cron-jobs/{JOB}/stop")

        response = client.post(f"{BASE}/cron-jobs/{JOB}/start")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["job"]["enabled"] is True

    def test_restart(self, client):
        response = client.post(f"{BASE}/cron-jobs/{JOB}/restart")
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["job"]["error_count"] == 0

    def test_recover_without_errors(self, client):
        response = client.post(f"{BASE}/recover")
        assert response.status_code == 200
        assert response.json() == {
            "total_jobs": 1,
            "healthy_jobs": 1,
            "error_jobs": 0,
            "recovered_jobs": 0,
        }

    def test_system_health(self, client):
        response = client.get(f"{BASE}/system")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["details"]["total_jobs"] == 1


class TestTriggerAPI:
    """수동 점검 API (같은 앱의 /api/health를 점검)."""

    def test_trigger(self, client):
        response = client.post(f"{BASE}/trigger")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["http_status_code"] == 200
        assert data["endpoint"] == "http://localhost:8000/api/health"
        assert data["details"]["status"] == "ok"

    def test_trigger_updates_job_and_logs(self, client):
        client.post(f"{BASE}/trigger")

        job = client.get(f"{BASE}/cron-jobs/{JOB}").json()
        assert job["run_count"] == 1
        assert job["last_run"] is not None

        logs = client.get(f"{BASE}/logs").json()
        assert logs["count"] == 1
        assert logs["limit"] == 100
        assert logs["logs"][0]["application_status"] == "healthy"
        assert logs["logs"][0]["metadata"]["job_id"] == JOB
        assert logs["logs"][0]["metadata"]["environment"] == "test"

    def test_service_status(self, client):
        client.post(f"{BASE}/trigger")

        data = client.get(f"{BASE}/service").json()
        assert data["is_configured"] is True
        assert data["endpoint"] == "/api/health"
        assert data["last_status"] == "healthy"

    def test_connectivity(self, client):
        response = client.get(f"{BASE}/connectivity")
        assert response.status_code == 200
        assert response.json()["success"] is True


class TestLogsAPI:
    """로그 조회/삭제 API."""

    def test_limit_out_of_range(self, client):
        for limit in (0, 1001):
            response = client.get(f"{BASE}/logs", params={"limit": limit})
            assert response.status_code == 400
            assert response.json()["detail"]["errors"][0]["field"] == "limit"

    def test_logs_empty(self, client):
        response = client.get(f"{BASE}/logs", params={"limit": 10})
        assert response.status_code == 200
        assert response.json() == {"logs": [], "count": 0, "limit": 10}

    def test_clear_logs(self, client):
        client.post(f"{BASE}/trigger")

        response = client.delete(f"{BASE}/logs")

        assert response.status_code == 200
        assert client.get(f"{BASE}/logs").json()["count"] == 0

    def test_stats(self, client):
        client.post(f"{BASE}/trigger")

        data = client.get(f"{BASE}/stats").json()
        assert data["logging"]["format"] == "json"
        assert data["logging"]["current_file_size"] > 0
        assert data["logging"]["total_log_files"] == 1
        assert data["cron_jobs"]["total"] == 1
        assert data["configuration"]["health_check_endpoint"] == "/api/health"
        assert data["configuration"]["cron_job"]["max_retries"] == 0


class TestConfigAPI:
    """설정 조회/변경 API."""

    def test_get_config(self, client):
        data = client.get(f"{BASE}/config").json()
        assert data["cron_job"]["schedule"] == "*/5 * * * *"
        assert data["logging"]["max_file_size"] == "10MB"

    def test_empty_update(self, client):
        response = client.put(f"{BASE}/config", json={})
        assert response.status_code == 400

    def test_invalid_update_lists_fields(self, client):
        """위반 필드 전체가 한 번에 반환되고 설정은 바뀌지 않는다."""
        response = client.put(
            f"{BASE}/config",
            json={"cron_job": {"schedule": "not a cron", "timeout_ms": 0}},
        )

        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["detail"]["errors"]}
        assert fields == {"schedule", "timeout_ms"}
        assert client.get(f"{BASE}/config").json()["cron_job"]["timeout_ms"] == 10000

    def test_update_reschedules_job(self, client):
        response = client.put(f"{BASE}/config", json={"cron_job": {"schedule": "0 * * * *"}})

        assert response.status_code == 200
        assert response.json()["cron_job"]["schedule"] == "0 * * * *"
        assert response.json()["cron_job"]["max_retries"] == 0

        job = client.get(f"{BASE}/cron-jobs/{JOB}").json()
        assert job["schedule"] == "0 * * * *"
        assert job["next_run"].endswith(":00:00Z") or ":00:00+00:00" in job["next_run"]

    def test_disable_via_config(self, client):
        client.put(f"{BASE}/config", json={"cron_job": {"enabled": False}})

        job = client.get(f"{BASE}/cron-jobs/{JOB}").json()
        assert job["enabled"] is False
        assert job["next_run"] is None
