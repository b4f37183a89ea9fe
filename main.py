from fastapi import FastAPI, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from dotenv import load_dotenv
import os
import logging

from duplicate_check import (
    DuplicateChecker,
    Language,
    UnsupportedLanguage,
    SubmissionsNotFound,
    NotFound,
    StorageFailure,
    load_config,
    generate_test_submissions,
    remove_test_submissions,
)

# Configure logging to both file and console
LOG_DIR = os.getenv("LOG_DIR", "logs")
os.makedirs(LOG_DIR, exist_ok=True)

# Set log level from environment (default: INFO)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, LOG_LEVEL, logging.INFO)

# Create formatters
log_formatter = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Root logger configuration
root_logger = logging.getLogger()
root_logger.setLevel(log_level)

# Console handler (for docker logs)
console_handler = logging.StreamHandler()
console_handler.setFormatter(log_formatter)
root_logger.addHandler(console_handler)

# File handler (persistent logs)
log_file = os.path.join(LOG_DIR, "duplicate_check.log")
file_handler = logging.FileHandler(log_file, encoding='utf-8')
file_handler.setFormatter(log_formatter)
root_logger.addHandler(file_handler)

# Configure uvicorn loggers to use the same format
for uvicorn_logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
    logging.getLogger(uvicorn_logger_name).handlers = [console_handler, file_handler]

logger = logging.getLogger(__name__)
logger.info(f"Logging initialized. Log file: {log_file}")

load_dotenv()
config = load_config()
app = FastAPI(title="Lab duplicate check")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_checker = DuplicateChecker.from_config(config)


def get_checker() -> DuplicateChecker:
    """Checker used by the endpoints; tests replace it via dependency_overrides."""
    return _checker


class DuplicateCheckRequest(BaseModel):
    language: str = Field(..., min_length=1)
    minimum_token_match: int | None = Field(None, ge=1)


class WorkspaceFixtureRequest(BaseModel):
    language: str = Field(..., min_length=1)
    code: str


def _parse_language(value: str) -> Language:
    try:
        return Language.parse(value)
    except UnsupportedLanguage as e:
        logger.warning(f"Rejected language: {value}")
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/labs/{lab_id}/duplicate-check")
def run_duplicate_check(
    lab_id: str,
    request: DuplicateCheckRequest,
    checker: DuplicateChecker = Depends(get_checker),
):
    """
    Run a duplicate check over all submissions of a lab.

    Returns the ranked comparison list of the new run; each comparison
    carries the url of its report (match<i>.html?ts=<run_id>).
    """
    language = _parse_language(request.language)
    logger.info(f"Duplicate check attempt - Lab: {lab_id}, Language: {language.value}")

    try:
        run = checker.run_duplicate_check(lab_id, language, request.minimum_token_match)
        return checker.get_run_overview(lab_id, run.run_id)
    except SubmissionsNotFound as e:
        logger.warning(f"No submissions for lab {lab_id}: {e}")
        raise HTTPException(status_code=404, detail="code is not found by labId")
    except ValueError as e:
        logger.warning(f"Rejected duplicate check for lab {lab_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except StorageFailure as e:
        logger.error(f"Failed to store duplicate check for lab {lab_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to store duplicate check results")


@app.get("/labs/{lab_id}/runs/{run_id}")
def get_run(lab_id: str, run_id: str, checker: DuplicateChecker = Depends(get_checker)):
    try:
        return checker.get_run_overview(lab_id, run_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageFailure as e:
        logger.error(f"Failed to read run {run_id} of lab {lab_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to read duplicate check results")


@app.get("/labs/{lab_id}/runs/{run_id}/comparisons/{index}")
def get_report_entry(lab_id: str, run_id: str, index: int, checker: DuplicateChecker = Depends(get_checker)):
    try:
        return checker.get_report_entry(lab_id, run_id, index)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageFailure as e:
        logger.error(f"Failed to read comparison {index} of run {run_id}, lab {lab_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to read duplicate check results")


@app.get("/labs/{lab_id}/reports/{file_name}")
def get_report_by_file_name(
    lab_id: str,
    file_name: str,
    ts: str,
    checker: DuplicateChecker = Depends(get_checker),
):
    """Report entry addressed the way overview urls do: match<i>.html?ts=<run_id>."""
    if not file_name.strip():
        raise HTTPException(status_code=400, detail="fileName should not be empty string")
    try:
        return checker.get_report_entry_by_name(lab_id, ts, file_name)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageFailure as e:
        logger.error(f"Failed to read {file_name} of run {ts}, lab {lab_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to read duplicate check results")


@app.post("/testing/workspace")
def create_test_workspace(request: WorkspaceFixtureRequest):
    """Write a two-student test lab with identical code."""
    language = _parse_language(request.language)
    lab_dir = generate_test_submissions(config.workspace_root, request.code, language)
    return {"detail": f"Test submissions written to {lab_dir}"}


@app.delete("/testing/workspace")
def delete_test_workspace():
    remove_test_submissions(config.workspace_root)
    return {"detail": "Test submissions removed"}
