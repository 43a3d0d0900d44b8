"""Unit tests for warehouse_compiler.worker.protocol."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from warehouse_compiler.errors import WorkerError
from warehouse_compiler.models import CompileRequest
from warehouse_compiler.worker.protocol import (
    ErrorMessage,
    ResultMessage,
    decode_message,
    decode_request,
    encode_error,
    encode_request,
    encode_result,
)


class TestRequestMessages:
    """Tests for the request sent to a worker."""

    def test_request_is_one_json_line(self, tmp_path: Path) -> None:
        """Test the request is a single newline-terminated JSON object."""
        request = CompileRequest(project_dir=str(tmp_path), timeout_millis=100)
        line = encode_request(request)

        assert line.endswith(b"\n")
        assert line.count(b"\n") == 1
        document = json.loads(line)
        assert document["type"] == "compile"
        assert document["request"]["timeout_millis"] == 100

    def test_request_decodes(self, tmp_path: Path) -> None:
        """Test a worker reads back the request it was sent."""
        request = CompileRequest(
            project_dir=str(tmp_path),
            project_config_override={"vars": {"env": "ci"}},
            use_main=True,
        )
        assert decode_request(encode_request(request)) == request

    @pytest.mark.parametrize("line", [b"", b"\n", b"   "])
    def test_empty_request(self, line: bytes) -> None:
        """Test a closed or blank stdin is reported."""
        with pytest.raises(ValueError, match="No compile request"):
            decode_request(line)

    def test_invalid_request(self) -> None:
        """Test a line that is not a compile message is rejected."""
        with pytest.raises(ValueError, match="Invalid compile request"):
            decode_request(b'{"type": "result", "payload": ""}\n')


class TestReplyMessages:
    """Tests for replies written by a worker."""

    def test_result_message(self) -> None:
        """Test a result reply decodes to ResultMessage."""
        message = decode_message(encode_result("e30="))
        assert isinstance(message, ResultMessage)
        assert message.payload == "e30="

    def test_error_message(self) -> None:
        """Test an error reply carries the exception type and traceback."""
        try:
            raise KeyError("defaultSchema")
        except KeyError as e:
            line = encode_error(e)

        message = decode_message(line)
        assert isinstance(message, ErrorMessage)
        assert message.error_type == "KeyError"
        assert message.message == "'defaultSchema'"
        assert message.traceback is not None
        assert "Traceback (most recent call last)" in message.traceback

    def test_error_message_without_text(self) -> None:
        """Test an exception without a message reports its type."""
        message = decode_message(encode_error(RuntimeError()))
        assert isinstance(message, ErrorMessage)
        assert message.message == "RuntimeError"

    def test_error_message_to_error(self) -> None:
        """Test an error reply converts to a WorkerError."""
        error = ErrorMessage(message="boom", error_type="ValueError").to_error()
        assert isinstance(error, WorkerError)
        assert error.user_message == "boom"
        assert error.error_type == "ValueError"

    @pytest.mark.parametrize(
        "line",
        [
            b"compiling project...\n",
            b'{"type": "progress", "percent": 50}\n',
            b'{"type": "result"}\n',
            b"[1, 2, 3]\n",
        ],
    )
    def test_invalid_reply(self, line: bytes) -> None:
        """Test protocol violations raise WorkerError."""
        with pytest.raises(WorkerError, match="invalid message"):
            decode_message(line)
