from fastapi import APIRouter, Depends, HTTPException, status
import logging

from app.api.dependencies import get_caller_identity, get_results_store
from app.schemas.history import HistoryEntry, HistoryResponse
from app.services.results_store import BULK_FEATURE, SINGLE_FEATURE, ResultsStore

logger = logging.getLogger(__name__)

router = APIRouter()


async def _list(store: ResultsStore, identity: str, feature: str, label: str) -> HistoryResponse:
    try:
        entries = await store.list_entries(identity, feature)
    except Exception as e:
        logger.error(f"Error listing {label} results for {identity}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retrieve {label} search history."
        )
    return HistoryResponse(results=[HistoryEntry.model_validate(entry) for entry in entries])


@router.get("/bulk-results", response_model=HistoryResponse, response_model_exclude_none=True)
async def list_bulk_results(
    identity: str = Depends(get_caller_identity),
    store: ResultsStore = Depends(get_results_store),
):
    return await _list(store, identity, BULK_FEATURE, "bulk")


@router.get("/bulk-results/{search_id}")
async def get_bulk_result(
    search_id: str,
    identity: str = Depends(get_caller_identity),
    store: ResultsStore = Depends(get_results_store),
):
    # ResultNotFound is mapped to 404 by the app
    return await store.get_json(identity, BULK_FEATURE, search_id)


@router.get("/single-results", response_model=HistoryResponse, response_model_exclude_none=True)
async def list_single_results(
    identity: str = Depends(get_caller_identity),
    store: ResultsStore = Depends(get_results_store),
):
    return await _list(store, identity, SINGLE_FEATURE, "single")


@router.get("/single-results/{search_id}")
async def get_single_result(
    search_id: str,
    identity: str = Depends(get_caller_identity),
    store: ResultsStore = Depends(get_results_store),
):
    return await store.get_json(identity, SINGLE_FEATURE, search_id)
