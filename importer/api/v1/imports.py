"""
Import endpoints: upload, pre-check, preview, job status and cancellation.
"""

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from importer.api.deps import get_import_service
from importer.pipeline.errors import (
    DuplicateProcessError,
    InputError,
    PoolClosedError,
    PoolSaturatedError,
    ProcessorResolutionError,
    StructureValidationError,
)
from importer.pipeline.service import ImportService

router = APIRouter(prefix="/imports", tags=["Imports"])


# ─── Processes ────────────────────────────────────────────
# Fixed paths stay above the /{entity_type} routes.

@router.get("/processes")
async def list_active_processes(service: ImportService = Depends(get_import_service)):
    """Jobs that are still running."""
    return {pid: process.to_dict() for pid, process in service.list_active_processes().items()}


@router.get("/processes/{job_id}")
async def get_process_status(job_id: str, service: ImportService = Depends(get_import_service)):
    process = service.get_process_status(job_id)
    if process is None:
        raise HTTPException(status_code=404, detail=f"Import process '{job_id}' not found")
    return process.to_dict()


@router.delete("/processes/{job_id}")
async def cancel_process(job_id: str, service: ImportService = Depends(get_import_service)):
    return {"job_id": job_id, "cancelled": service.cancel_process(job_id)}


@router.get("/statistics")
async def import_statistics(service: ImportService = Depends(get_import_service)):
    return service.statistics()


@router.post("/preview")
async def preview_import(
    file: UploadFile = File(...),
    limit: int | None = Query(default=None, ge=1, le=100),
    service: ImportService = Depends(get_import_service),
):
    """First rows of an upload, as they will be read."""
    content = await file.read()
    try:
        return service.preview(file.filename, content, limit)
    except InputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None


# ─── Uploads ──────────────────────────────────────────────

@router.post("/{entity_type}", status_code=status.HTTP_202_ACCEPTED)
async def submit_import(
    entity_type: str,
    file: UploadFile = File(...),
    job_id: str | None = Query(default=None),
    service: ImportService = Depends(get_import_service),
):
    """
    Queue an import and return its job id straight away.

    Structural problems (missing columns, empty body) are reported here
    with 400; row-level problems show up in the job's result.
    """
    content = await file.read()
    try:
        handle = service.import_file(entity_type, file.filename, content, job_id)
    except ProcessorResolutionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from None
    except StructureValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.outcome.to_dict()) from None
    except DuplicateProcessError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from None
    except InputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None
    except (PoolSaturatedError, PoolClosedError) as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from None

    return {"message": "Import queued", **handle.to_dict()}


@router.post("/{entity_type}/validate")
async def validate_import(
    entity_type: str,
    file: UploadFile = File(...),
    service: ImportService = Depends(get_import_service),
):
    """Synchronous structural pre-check; nothing is imported."""
    content = await file.read()
    return service.validate_file(entity_type, file.filename, content).to_dict()

