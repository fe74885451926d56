"""
HTTP routes for the listings API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.datastructures import UploadFile

from listings.assets import AssetFile
from listings.dependencies import get_record_service
from listings.records import RecordFields
from listings.schemas import (
    CreateListingResponse,
    DeleteListingResponse,
    ListingOut,
    RemoteDirResponse,
    StoreInfoResponse,
)
from listings.service import RecordService

logger = logging.getLogger(__name__)

router = APIRouter()
debug_router = APIRouter(prefix="/debug")

IMAGES_FIELD = "images"


@dataclass
class ListingPayload:
    fields: RecordFields
    uploads: List[UploadFile] = field(default_factory=list)

    @property
    def files(self) -> List[AssetFile]:
        return [AssetFile(filename=u.filename or "", stream=u.file) for u in self.uploads]


async def listing_payload(request: Request):
    """
    Read listing fields from a form or JSON body.

    Fields are taken from the raw body so an explicitly empty value still
    counts as sent. Uploaded files are closed once the request is done.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="JSON body must be an object")
        yield ListingPayload(fields=RecordFields.from_mapping(body))
        return

    form = await request.form()
    uploads = [f for f in form.getlist(IMAGES_FIELD) if isinstance(f, UploadFile)]
    values = {k: v for k, v in form.multi_items() if isinstance(v, str)}
    try:
        yield ListingPayload(fields=RecordFields.from_mapping(values), uploads=uploads)
    finally:
        for upload in uploads:
            await upload.close()


@router.get("/imoveis", response_model=List[ListingOut], response_model_exclude_unset=True)
def list_listings(service: RecordService = Depends(get_record_service)):
    return [record.as_dict() for record in service.list_records()]


@router.post("/upload-imovel", response_model=CreateListingResponse)
def create_listing(
    payload: ListingPayload = Depends(listing_payload),
    service: RecordService = Depends(get_record_service),
):
    new_id = service.create_record(payload.fields, payload.files)
    return CreateListingResponse(message="Listing saved", id=new_id)


@router.put(
    "/imoveis/{listing_id}",
    response_model=ListingOut,
    response_model_exclude_unset=True,
)
def update_listing(
    listing_id: int,
    payload: ListingPayload = Depends(listing_payload),
    service: RecordService = Depends(get_record_service),
):
    """
    Merge the sent fields into the listing. New images replace the old set.
    """
    record = service.update_record(listing_id, payload.fields, payload.files)
    return record.as_dict()


@router.delete("/imoveis/{listing_id}", response_model=DeleteListingResponse)
def delete_listing(
    listing_id: int, service: RecordService = Depends(get_record_service)
):
    service.delete_record(listing_id)
    return DeleteListingResponse()


@debug_router.get("/ftp-ls", response_model=RemoteDirResponse)
def debug_list_dir(
    remote_dir: str = Query(".", alias="dir", description="Remote directory to list"),
    service: RecordService = Depends(get_record_service),
):
    return RemoteDirResponse(dir=remote_dir, list=service.list_remote_dir(remote_dir))


@debug_router.get("/db", response_model=StoreInfoResponse)
def debug_store(service: RecordService = Depends(get_record_service)):
    return StoreInfoResponse(**service.inspect_store())
