"""Wire format between the supervisor and a compile worker.

Every message is one UTF-8 JSON object terminated by a newline:

- supervisor -> worker (stdin): ``{"type": "compile", "request": {...}}``
- worker -> supervisor (stdout), exactly one of:
    ``{"type": "result", "payload": "<base64>"}``
    ``{"type": "error", "message": "...", "error_type": "...", "traceback": "..."}``
"""

from __future__ import annotations

import json
import traceback
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from warehouse_compiler.errors import WorkerError
from warehouse_compiler.models import CompileRequest


class CompileMessage(BaseModel):
    """Request sent once to a freshly spawned worker."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["compile"] = "compile"
    request: CompileRequest


class ResultMessage(BaseModel):
    """Successful reply carrying the encoded result payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["result"] = "result"
    payload: str


class ErrorMessage(BaseModel):
    """Failure reply describing the exception raised inside the worker."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["error"] = "error"
    message: str
    error_type: str | None = None
    traceback: str | None = None

    def to_error(self) -> WorkerError:
        return WorkerError(
            self.message,
            error_type=self.error_type,
            worker_traceback=self.traceback,
        )


WorkerMessage = Annotated[ResultMessage | ErrorMessage, Field(discriminator="type")]

_WORKER_MESSAGE = TypeAdapter(WorkerMessage)


def _line(message: BaseModel) -> bytes:
    return message.model_dump_json().encode("utf-8") + b"\n"


def encode_request(request: CompileRequest) -> bytes:
    return _line(CompileMessage(request=request))


def decode_request(line: bytes | str) -> CompileRequest:
    """Decode the request line read by a worker.

    Raises:
        ValueError: If the line is empty or not a compile message.
    """
    if not line or not line.strip():
        raise ValueError("No compile request received")
    try:
        return CompileMessage.model_validate_json(line).request
    except PydanticValidationError as e:
        raise ValueError(f"Invalid compile request: {e}") from e


def encode_result(payload: str) -> bytes:
    return _line(ResultMessage(payload=payload))


def encode_error(exc: BaseException) -> bytes:
    """Encode an exception raised while compiling as an error reply."""
    return _line(
        ErrorMessage(
            message=str(exc) or type(exc).__name__,
            error_type=type(exc).__name__,
            traceback="".join(traceback.format_exception(exc)),
        )
    )


def decode_message(line: bytes) -> ResultMessage | ErrorMessage:
    """Decode the reply line written by a worker.

    Raises:
        WorkerError: If the line is not a valid reply. The worker broke the
            protocol, which is reported like a transport failure.
    """
    try:
        return _WORKER_MESSAGE.validate_json(line)
    except (PydanticValidationError, json.JSONDecodeError) as e:
        preview = line[:200].decode("utf-8", errors="replace").strip()
        raise WorkerError(
            f"Compilation worker sent an invalid message: {preview!r}",
            cause=e,
        ) from e
