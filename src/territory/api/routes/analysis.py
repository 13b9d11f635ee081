"""Analysis endpoints: synchronous runs and background jobs."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from ...persistence.filesystem import FileStorage
from ...schemas.analysis import AnalysisResponse, JobCreatedResponse, JobStatusResponse
from ...services.analysis import AnalysisJobRegistry, AnalysisOptions, AnalysisResult, run_analysis
from ...services.analysis.reference import load_reference_data
from ...services.ingest import EmptyFileError, MissingColumnsError, UnsupportedFileTypeError, read_table
from ...services.outputs.formatter import (
    aggregated_rows_to_csv,
    analysis_response_to_json,
    coverage_to_csv,
    unidentified_to_csv,
)

router = APIRouter(prefix="/analysis", tags=["analysis"])

registry = AnalysisJobRegistry()

logger = logging.getLogger(__name__)


async def _read_upload(file: UploadFile) -> list[list[Any]]:
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filename is required.")
    content = await file.read()
    try:
        return read_table(content, file.filename)
    except UnsupportedFileTypeError as exc:
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(exc)) from exc
    except EmptyFileError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


def _options(start_month: str | None, end_month: str | None, multiplier: float | None) -> AnalysisOptions:
    if multiplier is not None and multiplier <= 0:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="multiplier must be positive.")
    return AnalysisOptions(start_month=start_month or None, end_month=end_month or None, multiplier=multiplier)


def _persist(result: AnalysisResult, response: AnalysisResponse) -> str:
    storage = FileStorage()
    run_dir = storage.save_analysis(
        analysis_response_to_json(response),
        rows_csv=aggregated_rows_to_csv(result.rows),
        coverage_csv=coverage_to_csv(result.coverage),
        unidentified_csv=unidentified_to_csv(result.unidentified),
    )
    return str(run_dir)


@router.post("", response_model=AnalysisResponse, status_code=status.HTTP_200_OK)
async def analyze_file(
    file: UploadFile = File(...),
    start_month: str | None = Form(None, description="First month to include (YYYY-MM)."),
    end_month: str | None = Form(None, description="Last month to include (YYYY-MM)."),
    multiplier: float | None = Form(None, description="Potential estimate as a multiple of fact."),
    persist: bool = Form(False, description="Write CSV/JSON artifacts under the data root."),
) -> AnalysisResponse:
    """Analyze an uploaded CSV/XLSX sales file and return all metrics."""

    table = await _read_upload(file)
    options = _options(start_month, end_month, multiplier)
    reference = await run_in_threadpool(load_reference_data)
    try:
        result = await run_in_threadpool(
            run_analysis, table, reference.potential_clients, reference.cache_entries, options
        )
    except (MissingColumnsError, EmptyFileError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    result.reference_errors = list(reference.errors)
    response = AnalysisResponse.model_validate(result)
    if persist:
        response.run_directory = await run_in_threadpool(_persist, result, response)
        logger.info("Persisted analysis artifacts to %s", response.run_directory)
    return response


@router.post("/jobs", response_model=JobCreatedResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_analysis_job(
    file: UploadFile = File(...),
    start_month: str | None = Form(None),
    end_month: str | None = Form(None),
    multiplier: float | None = Form(None),
) -> JobCreatedResponse:
    """Queue an analysis on the background worker; poll the returned job id."""

    table = await _read_upload(file)
    options = _options(start_month, end_month, multiplier)
    reference = await run_in_threadpool(load_reference_data)
    job_id = registry.submit(
        table,
        reference.potential_clients,
        reference.cache_entries,
        options,
        reference_errors=reference.errors,
    )
    return JobCreatedResponse(job_id=job_id, status="queued")


@router.get("/jobs/{job_id}", response_model=JobStatusResponse, status_code=status.HTTP_200_OK)
def get_analysis_job(job_id: str) -> JobStatusResponse:
    job = registry.get(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Job '{job_id}' not found.")
    return JobStatusResponse.model_validate(job)
