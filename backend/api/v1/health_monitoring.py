"""헬스 모니터링 API 엔드포인트."""
from fastapi import APIRouter, Depends, HTTPException, Request

from core.exceptions import JobExecutionError, JobNotFoundError, ValidationFailedError
from schemas.health_monitoring import (
    ConnectivityResult,
    JobActionResponse,
    JobInfo,
    JobStatus,
    JobStatusList,
    MonitoringConfig,
    MonitoringConfigUpdate,
    MonitoringStats,
    ProbeResult,
    RecentLogsResponse,
    RecoverySummary,
    ServiceStatus,
    SystemHealth,
)
from services.health_monitoring_control import HealthMonitoringControl

router = APIRouter()


def get_health_monitoring(request: Request) -> HealthMonitoringControl:
    """초기화된 컨트롤 서피스 반환. 초기화 전이면 503."""
    control = getattr(request.app.state, "health_monitoring", None)
    if control is None:
        raise HTTPException(status_code=503, detail="Health monitoring system is not initialized")
    return control


def _not_found(e: JobNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


def _invalid(e: ValidationFailedError) -> HTTPException:
    return HTTPException(status_code=400, detail=e.to_dict())


# ============ Logs ============

@router.get("/logs", response_model=RecentLogsResponse)
async def get_logs(
    limit: int = 100,
    control: HealthMonitoringControl = Depends(get_health_monitoring),
):
    """최근 헬스체크 로그 (최신순)."""
    try:
        logs = control.get_recent_logs(limit)
    except ValidationFailedError as e:
        raise _invalid(e)
    return RecentLogsResponse(logs=logs, count=len(logs), limit=limit)


@router.delete("/logs")
async def clear_logs(control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """헬스체크 로그 전체 삭제 (되돌릴 수 없음)."""
    if not control.clear_logs():
        raise HTTPException(status_code=500, detail="Failed to clear health monitoring logs")
    return {"status": "cleared"}


# ============ Stats ============

@router.get("/stats", response_model=MonitoringStats)
async def get_stats(control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """로그/작업/설정 통합 통계."""
    return control.get_stats()


@router.get("/system", response_model=SystemHealth)
async def get_system_health(control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """스케줄러 작업 상태 요약."""
    return control.get_system_health()


@router.get("/service", response_model=ServiceStatus)
async def get_service_status(control: HealthMonitoringControl = Depends(get_health_monitoring)):
    return control.get_service_status()


# ============ Cron jobs ============

@router.get("/cron-jobs", response_model=JobStatusList)
async def list_cron_jobs(control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """전체 작업 상태."""
    return control.list_job_statuses()


@router.get("/cron-jobs/info", response_model=list[JobInfo])
async def get_cron_jobs_info(control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """작업 상세 정보 (스케줄, 타임존 포함)."""
    return control.get_jobs_info()


@router.get("/cron-jobs/{job_id}", response_model=JobStatus)
async def get_cron_job(job_id: str, control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """작업 상태 조회."""
    try:
        return control.get_job_status(job_id)
    except JobNotFoundError as e:
        raise _not_found(e)


@router.post("/cron-jobs/{job_id}/start", response_model=JobActionResponse)
async def start_cron_job(job_id: str, control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """작업 시작. 이미 활성이면 success=false."""
    try:
        success = control.start_job(job_id)
        return JobActionResponse(success=success, job=control.get_job_status(job_id))
    except JobNotFoundError as e:
        raise _not_found(e)


@router.post("/cron-jobs/{job_id}/stop", response_model=JobActionResponse)
async def stop_cron_job(job_id: str, control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """작업 정지. 이미 정지돼 있으면 success=false."""
    try:
        success = control.stop_job(job_id)
        return JobActionResponse(success=success, job=control.get_job_status(job_id))
    except JobNotFoundError as e:
        raise _not_found(e)


@router.post("/cron-jobs/{job_id}/restart", response_model=JobActionResponse)
async def restart_cron_job(job_id: str, control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """작업 재시작 (에러 기록 초기화)."""
    try:
        success = control.restart_job(job_id)
        return JobActionResponse(success=success, job=control.get_job_status(job_id))
    except JobNotFoundError as e:
        raise _not_found(e)


@router.post("/recover", response_model=RecoverySummary)
async def recover_jobs(control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """에러 상태 작업 복구 시도."""
    return control.recover_errors()


# ============ Checks ============

@router.post("/trigger", response_model=ProbeResult)
async def trigger_check(control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """수동 헬스체크."""
    try:
        return await control.trigger_check()
    except JobExecutionError as e:
        raise HTTPException(status_code=500, detail=f"Health check failed: {e.reason}")


@router.get("/connectivity", response_model=ConnectivityResult)
async def test_connectivity(control: HealthMonitoringControl = Depends(get_health_monitoring)):
    """헬스 엔드포인트 도달 가능 여부."""
    return await control.test_connectivity()


# ============ Config ============

@router.get("/config", response_model=MonitoringConfig)
async def get_config(control: HealthMonitoringControl = Depends(get_health_monitoring)):
    return control.get_config()


@router.put("/config", response_model=MonitoringConfig)
async def update_config(
    data: MonitoringConfigUpdate,
    control: HealthMonitoringControl = Depends(get_health_monitoring),
):
    """설정 부분 수정. 지정한 필드만 바뀐다."""
    if data.cron_job is None and data.logging is None and data.health_check_endpoint is None:
        raise HTTPException(
            status_code=400,
            detail="At least one configuration section (cron_job, logging, health_check_endpoint) must be provided",
        )
    try:
        return control.update_config(data)
    except ValidationFailedError as e:
        raise _invalid(e)
