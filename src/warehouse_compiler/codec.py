"""Encoding of compilation results exchanged with workers.

A payload is the base64 encoding of the result model's JSON document.
"""

from __future__ import annotations

import base64
import binascii
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from warehouse_compiler.errors import PayloadDecodeError
from warehouse_compiler.models import CompiledGraph, CoreExecutionResult

ModelT = TypeVar("ModelT", bound=BaseModel)


def encode_payload(model: BaseModel) -> str:
    """Encode a result model as a base64 payload string."""
    document = model.model_dump_json(by_alias=True).encode("utf-8")
    return base64.b64encode(document).decode("ascii")


def decode_payload(model_type: type[ModelT], payload: str) -> ModelT:
    """Decode a base64 payload string into ``model_type``.

    Raises:
        PayloadDecodeError: If the payload is not base64 or does not match
            the model.
    """
    try:
        document = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PayloadDecodeError("Unable to decode compilation result", cause=e) from e

    try:
        return model_type.model_validate_json(document)
    except PydanticValidationError as e:
        raise PayloadDecodeError(
            f"Compilation result is not a valid {model_type.__name__}",
            internal_details=str(e),
            cause=e,
        ) from e


def decode_compiled_graph(payload: str) -> CompiledGraph:
    return decode_payload(CompiledGraph, payload)


def decode_core_execution_result(payload: str) -> CoreExecutionResult:
    return decode_payload(CoreExecutionResult, payload)
