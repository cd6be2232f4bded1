"""Tests for wire frame encoding."""

from datetime import datetime, timezone

import orjson
import pytest

from streamcart.domain.live.broadcast.frames import decode_frame, encode_frame
from streamcart.utils.app_errors import AppError, AppErrorCode


class TestFrames:
    def test_encode_serializes_datetimes(self):
        moment = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)

        frame = orjson.loads(encode_frame("new-reaction", {"type": "heart", "timestamp": moment}))

        assert frame == {"event": "new-reaction", "data": {"type": "heart", "timestamp": "2026-03-01T10:00:00+00:00"}}

    def test_decode_without_data(self):
        frame = decode_frame('{"event": "leave"}')

        assert frame.event == "leave"
        assert frame.data is None

    def test_decode_bare_string_payload(self):
        assert decode_frame(b'{"event": "leave", "data": "se_1"}').data == "se_1"

    @pytest.mark.parametrize("raw", ["not json", '{"data": {}}', "[1, 2]"])
    def test_decode_malformed(self, raw):
        with pytest.raises(AppError) as exc_info:
            decode_frame(raw)

        assert exc_info.value.errcode == AppErrorCode.E_INVALID_REQUEST.value
