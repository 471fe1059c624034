"""
HTTP API adapter for the NanoPrompt workflow.

Architectural role:
- Expose the credential gate and workflow operations as JSON endpoints for a
  browser front end.
- Enforce adapter-level input validation.
- Delegate all state transitions to `nanoprompt.core.workflow.Workflow`.

Endpoint responsibilities:
- `GET  /health`: liveness.
- `GET  /v1/key`, `POST /v1/key`: gate status and key selection (409 once granted).
- `GET  /v1/state`: read-only workflow snapshot.
- `POST /v1/image`: select a source image (data URL or dropped file).
- `POST /v1/prompt`, `PUT /v1/prompt`: describe the image / edit the prompt.
- `POST /v1/generate`, `DELETE /v1/generate`: generate / clear the test image.

Gate handling:
- Every workflow endpoint returns HTTP 403 until the gate is granted.

Input validation behavior:
- Malformed image payloads -> HTTP 400. Only `data:` URLs are accepted; the
  server never reads paths from its own filesystem on behalf of a client.
- Non-image drops -> HTTP 415 (nothing is selected).
- Unsupported aspect ratio / image size -> HTTP 422.
- Requests whose input is not ready, or that are already in flight -> HTTP 409.

Error handling strategy:
- Synthesis failures are recorded by the workflow and returned as HTTP 502 with
  the user notice.
- Unexpected exceptions are not wrapped here and follow FastAPI default handling.

Side effects:
- Holds one in-process session (gate + workflow); this is a single-user tool.
- Every endpoint is `async def` so session state is only touched from the event
  loop thread.
- Loads environment variables at import time via `load_dotenv()`.
"""

from dotenv import load_dotenv

load_dotenv()

import base64
import binascii
import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from nanoprompt.api.multimodal.file_input_manager import (
    FileInputError,
    load_data_url,
    load_dropped_image,
)
from nanoprompt.core.credentials import CredentialGate, KeyFileCredentialHost
from nanoprompt.core.types import (
    AspectRatio,
    CredentialError,
    ImageSize,
    InvalidGenerationParameterError,
)
from nanoprompt.core.workflow import Workflow, WorkflowView
from nanoprompt.llm.provider_config import BILLING_HELP_URL, DEBUG


logger = logging.getLogger(__name__)

app = FastAPI(title="NanoPrompt")


# ============================================================
# Session
# ============================================================

class Session:
    """Gate and workflow for the single active user."""

    def __init__(self, host=None, workflow: Optional[Workflow] = None):
        self.pending_key: Optional[str] = None
        self.host = host or KeyFileCredentialHost(selector=self._take_pending_key)
        self.gate = CredentialGate(self.host)
        self.workflow = workflow or Workflow()
        self.gate.has_credential()

    def _take_pending_key(self) -> str:
        key, self.pending_key = self.pending_key, None
        return key or ""


_session: Optional[Session] = None


async def get_session() -> Session:
    global _session
    if _session is None:
        _session = Session()
    return _session


def reset_session(host=None, workflow: Optional[Workflow] = None) -> Session:
    """Replace the active session (used on logout and by tests)."""
    global _session
    _session = Session(host=host, workflow=workflow)
    return _session


async def require_access(session: Session = Depends(get_session)) -> Session:
    if not session.gate.granted:
        raise HTTPException(
            status_code=403,
            detail={"error": "API key not selected", "billing_help": BILLING_HELP_URL},
        )
    return session


# ============================================================
# Request Schemas
# ============================================================

class KeySelection(BaseModel):
    api_key: str


class ImageSelection(BaseModel):
    """Either `image` (a data URL) or a dropped file (`data` + `content_type`)."""

    image: Optional[str] = None
    data: Optional[str] = None
    content_type: Optional[str] = None
    filename: Optional[str] = None


class PromptEdit(BaseModel):
    prompt: str


class GenerateOptions(BaseModel):
    aspect_ratio: Optional[str] = None
    image_size: Optional[str] = None


# ============================================================
# Response Formatting
# ============================================================

def serialize_view(view: WorkflowView) -> dict:
    source = view.source_image
    artifact = view.generated_image
    return {
        "source_image": None if source is None else {
            "data_url": source.data_url,
            "mime_type": source.mime_type,
            "filename": source.filename,
        },
        "prompt": view.prompt,
        "generated_image": None if artifact is None else {
            "data_url": artifact.data_url,
            "mime_type": artifact.mime_type,
            "prompt": artifact.prompt,
            "aspect_ratio": artifact.aspect_ratio.value,
            "image_size": artifact.image_size.value,
        },
        "image_is_stale": view.image_is_stale,
        "aspect_ratio": view.aspect_ratio.value,
        "image_size": view.image_size.value,
        "analyzing": view.analyzing,
        "generating": view.generating,
        "notice": view.notice,
        "options": {
            "aspect_ratios": AspectRatio.values(),
            "image_sizes": ImageSize.values(),
        },
    }


def _failure_response(view: WorkflowView) -> JSONResponse:
    content = {"error": view.notice}
    if DEBUG:
        content["detail"] = view.error_detail
    return JSONResponse(status_code=502, content=content)


def _skipped(reason: str) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": reason})


# ============================================================
# Health + Credentials
# ============================================================

@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/v1/key")
async def key_status(session: Session = Depends(get_session)):
    gate = session.gate
    if not gate.granted:
        gate.has_credential()
    return {
        "granted": gate.granted,
        "state": gate.state.value,
        "error": gate.error.user_message if gate.error else None,
        "billing_help": BILLING_HELP_URL,
    }


@app.post("/v1/key")
async def select_key(body: KeySelection, session: Session = Depends(get_session)):
    if session.gate.granted:
        return _skipped("API key already selected")

    session.pending_key = body.api_key
    try:
        session.gate.request_selection()
    except CredentialError as err:
        return JSONResponse(
            status_code=400,
            content={"error": err.user_message, "state": session.gate.state.value},
        )
    finally:
        session.pending_key = None
    return {"granted": True, "state": session.gate.state.value}


# ============================================================
# Workflow
# ============================================================

@app.get("/v1/state")
async def state(session: Session = Depends(require_access)):
    return serialize_view(session.workflow.view())


@app.post("/v1/image")
async def select_image(body: ImageSelection, session: Session = Depends(require_access)):
    try:
        if body.image:
            if not body.image.startswith("data:"):
                raise FileInputError("Image must be a data URL")
            image = load_data_url(body.image)
        elif body.data is not None:
            try:
                raw = base64.b64decode(body.data, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise FileInputError("Dropped file payload is not valid base64") from exc
            image = load_dropped_image(body.content_type, raw, body.filename)
            if image is None:
                return JSONResponse(status_code=415, content={"error": "Expected an image file"})
        else:
            raise FileInputError("No image provided")
    except FileInputError as err:
        return JSONResponse(status_code=400, content={"error": str(err)})

    session.workflow.select_image(image)
    if DEBUG:
        logger.debug("Selected image %s (%s)", image.filename, image.mime_type)
    return serialize_view(session.workflow.view())


@app.post("/v1/prompt")
async def request_prompt(session: Session = Depends(require_access)):
    workflow = session.workflow
    view = workflow.view()
    if not view.has_source_image:
        return _skipped("No image selected")
    if view.analyzing:
        return _skipped("Prompt request already in progress")

    prompt = await workflow.request_prompt()
    view = workflow.view()
    if prompt is None:
        if view.notice:
            return _failure_response(view)
        return _skipped("Image changed while analyzing")
    return serialize_view(view)


@app.put("/v1/prompt")
async def edit_prompt(body: PromptEdit, session: Session = Depends(require_access)):
    session.workflow.edit_prompt(body.prompt)
    return serialize_view(session.workflow.view())


@app.post("/v1/generate")
async def request_image(
    body: Optional[GenerateOptions] = None,
    session: Session = Depends(require_access),
):
    workflow = session.workflow
    body = body or GenerateOptions()
    try:
        if body.aspect_ratio is not None:
            workflow.set_aspect_ratio(body.aspect_ratio)
        if body.image_size is not None:
            workflow.set_image_size(body.image_size)
    except InvalidGenerationParameterError as err:
        return JSONResponse(status_code=422, content={"error": str(err)})

    view = workflow.view()
    if not view.prompt:
        return _skipped("No prompt available")
    if view.generating:
        return _skipped("Image generation already in progress")

    artifact = await workflow.request_image()
    view = workflow.view()
    if artifact is None:
        if view.notice:
            return _failure_response(view)
        return _skipped("Image changed while generating")
    return serialize_view(view)


@app.delete("/v1/generate")
async def clear_generated_image(session: Session = Depends(require_access)):
    session.workflow.clear_generated_image()
    return serialize_view(session.workflow.view())
