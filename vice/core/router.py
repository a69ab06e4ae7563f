"""Validation HTTP router: check a document and return its canonical form."""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from vice.auth import verify_api_key
from vice.core import documents
from vice.core.crossref import validate_habits_against_checklists
from vice.errors import ViceError

_LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/validate", tags=["validate"])


class ValidateRequest(BaseModel):
    document: str
    checklists: str | None = None  # habits: resolve checklist references against this
    habits: str | None = None  # entries: decode values by these field types


class ValidationReport(BaseModel):
    valid: bool
    error: str | None = None
    error_kind: str | None = None
    ids_generated: bool = False
    canonical: str | None = None


def _check_habits(req: ValidateRequest) -> ValidationReport:
    loaded = documents.load_schema(req.document)
    schema = loaded.value
    if req.checklists is not None:
        checklists = documents.load_checklists(req.checklists).value
        schema = validate_habits_against_checklists(schema, checklists)
    return ValidationReport(
        valid=True, ids_generated=loaded.ids_generated, canonical=documents.dump_schema(schema)
    )


def _check_entries(req: ValidateRequest) -> ValidationReport:
    schema = documents.load_schema(req.habits).value if req.habits is not None else None
    log = documents.load_entry_log(req.document, schema)
    return ValidationReport(valid=True, canonical=documents.dump_entry_log(log))


def _check_checklists(req: ValidateRequest) -> ValidationReport:
    loaded = documents.load_checklists(req.document)
    return ValidationReport(
        valid=True, ids_generated=loaded.ids_generated, canonical=documents.dump_checklists(loaded.value)
    )


def _check_checklist_entries(req: ValidateRequest) -> ValidationReport:
    entries = documents.load_checklist_entries(req.document)
    return ValidationReport(valid=True, canonical=documents.dump_checklist_entries(entries))


CHECKERS: dict[str, Callable[[ValidateRequest], ValidationReport]] = {
    "habits": _check_habits,
    "entries": _check_entries,
    "checklists": _check_checklists,
    "checklist-entries": _check_checklist_entries,
}


@router.post("/{document_kind}", response_model=ValidationReport)
async def validate_document(
    document_kind: str,
    body: ValidateRequest,
    _: str = Depends(verify_api_key),
) -> ValidationReport:
    checker = CHECKERS.get(document_kind)
    if checker is None:
        raise HTTPException(status_code=404, detail=f"Unknown document kind: {document_kind}")

    try:
        return checker(body)
    except ViceError as exc:
        _LOGGER.info("Rejected %s document: %s", document_kind, exc)
        return ValidationReport(valid=False, error=str(exc), error_kind=exc.kind)
