import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import requests
from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from starlette.datastructures import UploadFile
from starlette.requests import ClientDisconnect

from Application.helpers.cancellation import CancelToken
from Application.helpers.exceptions import (
    ArchiveError,
    BackendError,
    RequestValidationError,
    UploadCancelled,
)
from Application.mappings.upload_mapper import filename_field_for, to_params_dto, to_upload_request
from Application.services.shapefile_service import ShapefileService
from Data.repositories.staging_repository import StagingRepository
from Entities.upload_entity import ResponseFormat
from Presentation.API.responses import CData, error_response, success_response

logger = logging.getLogger(__name__)

router = APIRouter()

UPLOAD_FAILED = "Unable to upload file"
CLIENT_CLOSED_REQUEST = 499
DISCONNECT_POLL_INTERVAL = 0.1


def _content_length(request: Request) -> Optional[int]:
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _is_multipart(request: Request) -> bool:
    return request.headers.get("content-type", "").lower().startswith("multipart/form-data")


def _find_part(form, field: str) -> Optional[UploadFile]:
    wanted = field.lower()
    for key, value in form.multi_items():
        if key.lower() == wanted and isinstance(value, UploadFile):
            return value
    return None


def _client_filename(part: UploadFile) -> Optional[str]:
    # some browsers send the full client path
    if not part.filename:
        return None
    return part.filename.replace("\\", "/").rsplit("/", 1)[-1] or None


async def _wait_for_disconnect(request: Request) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)


def _log_abandoned(task: "asyncio.Future") -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Abandoned backend work ended with %r", task.exception())


async def _unless_disconnected(request: Request, token: CancelToken, func: Callable, *args) -> Any:
    """
    Run ``func`` in the threadpool while watching the client connection.

    If the client goes away first, ``token`` is cancelled (which closes the
    backend session and stops any request body mid-send) and ``UploadCancelled``
    is raised without waiting for the worker thread.
    """
    work = asyncio.ensure_future(run_in_threadpool(func, *args))
    watcher = asyncio.ensure_future(_wait_for_disconnect(request))
    try:
        done, _ = await asyncio.wait({work, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        watcher.cancel()
    if work in done:
        return work.result()
    token.cancel()
    work.add_done_callback(_log_abandoned)
    raise UploadCancelled("Client disconnected")


@router.api_route("/upload", methods=["GET", "POST"])
async def upload_and_publish(request: Request) -> Response:
    settings = request.app.state.settings

    # query string wins over form fields, first value wins within each
    params: Dict[str, str] = {}
    for key, value in request.query_params.multi_items():
        params.setdefault(key, value)

    response_format = ResponseFormat.from_param(params.get("response-encoding"))

    # checked before a single byte of the body is read
    content_length = _content_length(request)
    if content_length is None or content_length > settings.MAX_FILE_SIZE:
        return error_response(
            f"Upload exceeds max file size of {settings.MAX_FILE_SIZE} bytes", response_format
        )

    staging = StagingRepository(settings.UPLOAD_TEMP_PATH)
    token = CancelToken()
    service = None
    form = None
    staged_path = None
    try:
        part = None
        if _is_multipart(request):
            form = await request.form()
            for key, value in form.multi_items():
                if isinstance(value, str):
                    params.setdefault(key, value)
            field = filename_field_for(params, settings.FILENAME_PARAM)
            part = _find_part(form, field)
            if part is None:
                raise RequestValidationError(f"No file found in multipart field \"{field}\"")
            if not (params.get(field) or "").strip() and _client_filename(part):
                params[field] = _client_filename(part)
            response_format = ResponseFormat.from_param(params.get("response-encoding"))

        req = to_upload_request(to_params_dto(params, settings.FILENAME_PARAM), settings, content_length)
        response_format = req.response_format

        staged_path = staging.path_for(req.filename)
        logger.debug("Temporary file set to %s", staged_path)
        if part is not None:
            await run_in_threadpool(staging.save_file, part.file, staged_path)
        else:
            await staging.save_stream(request.stream(), staged_path)
        logger.debug("File saved to %s", staged_path)

        service = ShapefileService.create_from_settings(settings, cancel_token=token)
        bundle = await _unless_disconnected(request, token, service.prepare_archive, staged_path)
        result = await _unless_disconnected(request, token, service.publish, req, bundle)

        payload: Dict[str, str] = {}
        if result.response_text is not None:
            payload["wpsResponse"] = CData(result.response_text)
        return success_response(payload, response_format)

    except (ClientDisconnect, UploadCancelled):
        # nobody is listening for an envelope
        logger.info("Client disconnected; upload %s abandoned", staged_path or "(not staged)")
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    except RequestValidationError as ex:
        return error_response(ex.message, response_format)

    except ArchiveError as ex:
        logger.warning(ex.message)
        return error_response(UPLOAD_FAILED, response_format, ex.message)

    except BackendError as ex:
        logger.warning("Backend rejected upload: %s", ex.message)
        return error_response(UPLOAD_FAILED, response_format, ex.detail)

    except requests.RequestException as ex:
        logger.warning("Backend call failed: %s", ex)
        return error_response(UPLOAD_FAILED, response_format, str(ex))

    except Exception:
        logger.warning("Unexpected failure while handling upload", exc_info=True)
        return error_response(UPLOAD_FAILED, response_format)

    finally:
        if service is not None:
            service.close()
        if staged_path is not None:
            staging.delete(staged_path)
        if form is not None:
            await form.close()


@router.get("/health")
def health(request: Request) -> Dict[str, str]:
    return {"status": "ok", "mode": request.app.state.settings.PUBLISH_MODE.value}
