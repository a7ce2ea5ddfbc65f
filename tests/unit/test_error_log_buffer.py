from __future__ import annotations

import json
import re
import threading
from pathlib import Path

from player_watch.logging.error_log import ErrorLogBuffer
from player_watch.models.error_record import STAGE_DISPATCH, STAGE_NORMALIZE, ErrorRecord


def test_error_record_create_stamps_utc_time():
    rec = ErrorRecord.create(STAGE_NORMALIZE, "index=0 id=x", "PARSE_ID", "error parsing id 'x'")

    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.?\d*Z", rec.timestamp)
    payload = json.loads(rec.to_json_line())
    assert list(payload) == ["timestamp", "stage", "subject", "error_type", "message"]
    assert payload["error_type"] == "PARSE_ID"


def test_empty_buffer_writes_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_flush_writes_json_lines(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path / "logs")
    buf.append(ErrorRecord.create(STAGE_NORMALIZE, "index=1 id=a", "PARSE_ID", "bad id"))
    buf.append(ErrorRecord.create(STAGE_DISPATCH, "store=7 players=2", "DISPATCH_FAILED", "smtp down"))
    assert len(buf) == 2

    path = buf.flush()

    assert path is not None
    assert re.fullmatch(r"errors-\d{8}-\d{6}\.log", path.name)
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["stage"] for line in lines] == ["normalize", "dispatch"]
    assert len(buf) == 0


def test_append_is_thread_safe(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path)

    def worker(n: int) -> None:
        for i in range(50):
            buf.append(ErrorRecord.create(STAGE_DISPATCH, f"store={n}", "DISPATCH_FAILED", str(i)))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(buf.records) == 200
