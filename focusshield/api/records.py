"""
Records API Endpoints

The remote-store side of push-sync: clients list, upsert and patch their own
sessions, ship notes and meeting blocks. Ids come from the client.
"""

from typing import Any, Dict, List
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..database import get_db
from ..exceptions import RecordNotFoundError, RecordOwnershipError, RemoteStoreError
from ..schemas.records import RecordKind, RECORD_MODELS
from ..schemas.user import AuthUser
from ..services.remote_store import SqlRemoteStore
from .auth import get_current_user
from .metrics import records_upserted, remote_store_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/records", tags=["records"])


def get_remote_store(
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> SqlRemoteStore:
    return SqlRemoteStore(db, user_id=current_user.id)


def _serialize(record) -> Dict[str, Any]:
    return record.model_dump(mode="json", exclude={"synced"})


@router.get("/{kind}", status_code=status.HTTP_200_OK)
async def list_records(
    kind: RecordKind,
    current_user: AuthUser = Depends(get_current_user),
    store: SqlRemoteStore = Depends(get_remote_store)
) -> List[Dict[str, Any]]:
    """All records of kind owned by the current user, oldest first."""
    try:
        records = store.select_by_user(kind, current_user.id)
    except RemoteStoreError as e:
        remote_store_errors.labels(operation="select").inc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch {kind.value}: {str(e)}"
        )
    return [_serialize(record) for record in records]


@router.put("/{kind}", status_code=status.HTTP_200_OK)
async def upsert_records(
    kind: RecordKind,
    payload: List[Dict[str, Any]],
    current_user: AuthUser = Depends(get_current_user),
    store: SqlRemoteStore = Depends(get_remote_store)
):
    """
    Insert or update records by id. Re-sending the same ids never creates duplicates.

    Raises:
        409: An id already belongs to another user
        422: A record does not match the schema of kind
    """
    model = RECORD_MODELS[kind]
    try:
        records = [model.model_validate({**item, "user_id": current_user.id}) for item in payload]
    except PydanticValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False)
        )

    try:
        store.upsert(kind, records, conflict_key="id")
    except RecordOwnershipError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except RemoteStoreError as e:
        remote_store_errors.labels(operation="upsert").inc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upsert {kind.value}: {str(e)}"
        )

    records_upserted.labels(kind=kind.value).inc(len(records))
    return {"upserted": len(records), "ids": [record.id for record in records]}


@router.patch("/{kind}/{record_id}", status_code=status.HTTP_200_OK)
async def update_record(
    kind: RecordKind,
    record_id: str,
    patch: Dict[str, Any],
    store: SqlRemoteStore = Depends(get_remote_store)
) -> Dict[str, Any]:
    """Shallow-merge patch into one record. id and user_id cannot change."""
    try:
        record = store.update_by_key(kind, record_id, patch)
    except RecordNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Record {record_id} not found"
        )
    except PydanticValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False)
        )
    except RemoteStoreError as e:
        remote_store_errors.labels(operation="update").inc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update record: {str(e)}"
        )
    return _serialize(record)
