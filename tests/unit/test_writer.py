"""Unit tests for recovery/writer.py — ResponseWriter discipline."""

from __future__ import annotations

import pytest

from recovery.writer import ResponseWriter
from tests.conftest import SendRecorder


class TestWriteHeader:
    @pytest.mark.asyncio
    async def test_sends_status_and_pending_headers(self, recorder: SendRecorder) -> None:
        writer = ResponseWriter(recorder)
        writer.headers["Content-Type"] = "application/xml"

        await writer.write_header(418)

        assert recorder.start["status"] == 418
        assert recorder.header("content-type") == "application/xml"
        assert writer.started
        assert writer.status_code == 418

    @pytest.mark.asyncio
    async def test_second_call_is_ignored(self, recorder: SendRecorder) -> None:
        writer = ResponseWriter(recorder)
        await writer.write_header(500)
        await writer.write_header(200)

        assert len(recorder.messages) == 1
        assert writer.status_code == 500

    @pytest.mark.asyncio
    async def test_headers_after_start_are_not_sent(self, recorder: SendRecorder) -> None:
        writer = ResponseWriter(recorder)
        await writer.write_header(500)
        writer.headers["X-Late"] = "1"
        await writer.finish()

        assert recorder.header("x-late") is None


class TestWrite:
    @pytest.mark.asyncio
    async def test_implicit_200(self, recorder: SendRecorder) -> None:
        writer = ResponseWriter(recorder)
        written = await writer.write(b"hello")

        assert written == 5
        assert recorder.start["status"] == 200
        assert recorder.messages[-1] == {"type": "http.response.body", "body": b"hello", "more_body": True}

    @pytest.mark.asyncio
    async def test_write_after_finish_is_dropped(self, recorder: SendRecorder) -> None:
        writer = ResponseWriter(recorder)
        await writer.finish()
        count = len(recorder.messages)

        assert await writer.write(b"late") == 0
        assert len(recorder.messages) == count


class TestFinish:
    @pytest.mark.asyncio
    async def test_finish_without_writes(self, recorder: SendRecorder) -> None:
        writer = ResponseWriter(recorder)
        await writer.finish()

        assert recorder.start["status"] == 200
        assert recorder.messages[-1] == {"type": "http.response.body", "body": b"", "more_body": False}
        assert writer.finished

    @pytest.mark.asyncio
    async def test_finish_is_idempotent(self, recorder: SendRecorder) -> None:
        writer = ResponseWriter(recorder)
        await writer.write_header(500)
        await writer.finish()
        await writer.finish()

        assert len(recorder.messages) == 2


class TestSendTracking:
    @pytest.mark.asyncio
    async def test_tracks_messages_from_inner_app(self, recorder: SendRecorder) -> None:
        writer = ResponseWriter(recorder)
        await writer.send({"type": "http.response.start", "status": 204, "headers": []})
        assert writer.started and not writer.finished
        assert writer.status_code == 204

        await writer.send({"type": "http.response.body", "body": b""})
        assert writer.finished

    @pytest.mark.asyncio
    async def test_streaming_body_is_not_finished(self, recorder: SendRecorder) -> None:
        writer = ResponseWriter(recorder)
        await writer.send({"type": "http.response.start", "status": 200, "headers": []})
        await writer.send({"type": "http.response.body", "body": b"a", "more_body": True})
        assert not writer.finished
