"""Pipeline router: runs documents through the MICO submission stage.

The handlers are plain functions, so FastAPI executes them in its worker
threadpool: every request is one document processed on its own thread.
"""

import hashlib
import json
import os

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from server.models.requests import StageConfigurationRequest
from server.models.responses import DocumentResponse, VersionResponse
from shared.dependencies.auth import verify_api_key
from shared.exceptions import MicoBridgeError
from shared.models.document import Document

pipeline_router = APIRouter()

HASH_CHUNK_SIZE = 65536


async def read_stage_settings(request: Request) -> StageConfigurationRequest:
    """Read the stage settings from the raw multipart form.

    Only a missing key is absent; a key sent with an empty value stays "".
    """
    form = await request.form()
    return StageConfigurationRequest(
        micoserver=form.get("micoserver"),
        micouser=form.get("micouser"),
        micopassword=form.get("micopassword"),
        micodocuri=form.get("micodocuri"),
    )


@pipeline_router.post(
    "/pipeline/version",
    dependencies=[Depends(verify_api_key)],
    tags=["Pipeline"],
)
def handle_version(request: Request, body: StageConfigurationRequest) -> JSONResponse:
    """Return the version string of the stage for the given settings.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (StageConfigurationRequest): The stage settings; omitted settings count as absent.

    Returns:
        JSONResponse: The version string.
    """
    service = request.app.state.submission_services["binary"]
    version = service.get_pipeline_description(body.to_stage_configuration())
    return JSONResponse(content=VersionResponse(version=version).model_dump())


@pipeline_router.post(
    "/pipeline/{variant}/document",
    dependencies=[Depends(verify_api_key)],
    tags=["Pipeline"],
)
def handle_document(
    request: Request,
    variant: str,
    file: UploadFile = File(...),
    uri: str = Form(...),
    mime_type: str = Form(""),
    metadata: str | None = Form(None),
    settings: StageConfigurationRequest = Depends(read_stage_settings),
) -> JSONResponse:
    """Run an uploaded document through the submission stage.

    Stage settings (micoserver, micouser, micopassword, micodocuri) that are not
    sent fall back to the MICO_* environment values; a setting sent empty stays empty.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        variant (str): "binary" or "text".
        file (UploadFile): The document content.
        uri (str): The document URI.
        mime_type (str): The declared content type; empty lets the stage sniff it.
        metadata (str | None): JSON object with the existing metadata fields.
        settings (StageConfigurationRequest): The stage settings read from the form.

    Returns:
        JSONResponse: Status and metadata of the outgoing document.

    Raises:
        HTTPException: 404 for an unknown variant, 422 for invalid metadata, 500 if processing fails.
    """
    service = request.app.state.submission_services.get(variant)
    if service is None:
        raise HTTPException(status_code=404, detail=f"Unknown pipeline variant '{variant}'.")

    try:
        fields = json.loads(metadata) if metadata else {}
        stream = file.file
        stream.seek(0, os.SEEK_END)
        length = stream.tell()
        stream.seek(0)
        document = Document(uri=uri, mime_type=mime_type, metadata=fields, binary_stream=stream, binary_length=length)
    except (ValueError, ValidationError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid document: {e}")

    stage_config = settings.to_stage_configuration().merged_over(request.app.state.stage_defaults)

    request.app.state.logging.info("Document received: variant=%s uri=%r length=%d", variant, uri, length)
    try:
        outgoing, status = service.process(document, stage_config)
    except MicoBridgeError as e:
        request.app.state.logging.error("Processing of %r failed: %s", uri, e)
        raise HTTPException(status_code=500, detail=str(e))

    digest = hashlib.sha256()
    with outgoing.binary_stream as content:
        for chunk in iter(lambda: content.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)

    response = DocumentResponse(
        uri=outgoing.uri,
        status=status,
        mime_type=outgoing.mime_type,
        metadata=outgoing.metadata,
        binary_length=outgoing.binary_length,
        binary_sha256=digest.hexdigest(),
    )
    return JSONResponse(content=response.model_dump(mode="json"))
