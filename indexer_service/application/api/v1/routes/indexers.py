"""Indexer REST routes."""

from uuid import UUID

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter, Form, UploadFile

from indexer_service.domain.indexer.command.create import CreateIndexer, CreateIndexerHandler
from indexer_service.domain.indexer.command.start import StartIndexer, StartIndexerHandler
from indexer_service.domain.indexer.command.stop import StopIndexer, StopIndexerHandler
from indexer_service.domain.indexer.model.value import (
    IndexerId,
    IndexerStatus,
    IndexerType,
)
from indexer_service.domain.indexer.query.get_indexer import (
    GetIndexer,
    GetIndexerHandler,
    IndexerDetail,
)
from indexer_service.domain.indexer.query.list_indexers import (
    IndexerList,
    ListIndexers,
    ListIndexersHandler,
)
from indexer_service.domain.shared.error import ValidationError

router = APIRouter(prefix="/indexers", tags=["Indexers"], route_class=DishkaRoute)


@router.post("", response_model=IndexerDetail)
async def create_indexer(
    script: UploadFile,
    handler: FromDishka[CreateIndexerHandler],
    target_url: str = Form(...),
    indexer_type: IndexerType = Form(IndexerType.WEBHOOK),
) -> IndexerDetail:
    if not target_url.strip():
        raise ValidationError("target_url must not be empty", field="target_url")
    content = await script.read()
    return await handler.run(
        CreateIndexer(script=content, target_url=target_url.strip(), indexer_type=indexer_type)
    )


@router.get("", response_model=IndexerList)
async def list_indexers(
    handler: FromDishka[ListIndexersHandler],
    status: IndexerStatus | None = None,
) -> IndexerList:
    return await handler.run(ListIndexers(status=status))


@router.get("/{indexer_id}", response_model=IndexerDetail)
async def get_indexer(
    indexer_id: UUID,
    handler: FromDishka[GetIndexerHandler],
) -> IndexerDetail:
    return await handler.run(GetIndexer(id=IndexerId(indexer_id)))


@router.post("/start/{indexer_id}", response_model=IndexerDetail)
async def start_indexer(
    indexer_id: UUID,
    handler: FromDishka[StartIndexerHandler],
) -> IndexerDetail:
    return await handler.run(StartIndexer(id=IndexerId(indexer_id)))


@router.post("/stop/{indexer_id}", response_model=IndexerDetail)
async def stop_indexer(
    indexer_id: UUID,
    handler: FromDishka[StopIndexerHandler],
) -> IndexerDetail:
    return await handler.run(StopIndexer(id=IndexerId(indexer_id)))
