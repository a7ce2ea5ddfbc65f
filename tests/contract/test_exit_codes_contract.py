from __future__ import annotations

import re
import smtplib
from pathlib import Path
from unittest.mock import patch

from helpers import payload, raw_record
from player_watch.cli import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL, main
from player_watch.fetch.client import FetchError, PlayersClient

SUMMARY_RE = re.compile(
    r"^SUMMARY players=(\d+) rejected=(\d+) eligible=(\d+) stores=(\d+) "
    r"sent=(\d+) failed=(\d+) skipped=(\d+) elapsed_sec=[0-9.]+$",
    re.MULTILINE,
)

TWO_STORES = payload(
    raw_record(id="1"),
    raw_record(id="2", f_tag="store:2000,company:beta"),
    raw_record(id="3", f_tag="store:3000,company:gamma"),
)


def _summary(out: str) -> tuple[int, ...]:
    m = SUMMARY_RE.search(out)
    assert m, f"no SUMMARY line in output:\n{out}"
    return tuple(int(g) for g in m.groups())


def test_exit_code_success_all(write_config: Path, capsys):
    with patch.object(PlayersClient, "fetch", return_value=TWO_STORES), \
         patch("player_watch.mail.mailer.smtplib.SMTP") as smtp_cls:
        code = main([])

    assert code == EXIT_SUCCESS_ALL
    assert smtp_cls.return_value.send_message.call_count == 2
    assert _summary(capsys.readouterr().out) == (3, 0, 2, 2, 2, 0, 0)


def test_exit_code_partial_failure(write_config: Path, capsys):
    def send_message(message, from_addr=None, to_addrs=None):
        if "S-1042" in message["Subject"]:
            raise smtplib.SMTPDataError(554, b"rejected")

    with patch.object(PlayersClient, "fetch", return_value=TWO_STORES), \
         patch("player_watch.mail.mailer.smtplib.SMTP") as smtp_cls:
        smtp_cls.return_value.send_message.side_effect = send_message
        code = main([])

    assert code == EXIT_PARTIAL_FAILURE
    out = capsys.readouterr().out
    assert _summary(out) == (3, 0, 2, 2, 1, 1, 0)
    assert "ERROR dispatch: failed to send mail store=1042" in out


def test_exit_code_fatal_on_missing_config(temp_workdir: Path, capsys):
    assert main([]) == EXIT_FATAL
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_fatal_on_fetch_error(write_config: Path, capsys):
    with patch.object(PlayersClient, "fetch", side_effect=FetchError("unexpected status 401 Unauthorized")):
        code = main([])

    assert code == EXIT_FATAL
    out = capsys.readouterr().out
    assert "ERROR pipeline: fetch failed: unexpected status 401 Unauthorized" in out
    assert "SUMMARY" not in out


def test_exit_code_fatal_on_malformed_payload(write_config: Path, capsys):
    with patch.object(PlayersClient, "fetch", return_value=b'{"error": "bad key"}'):
        assert main([]) == EXIT_FATAL
    assert "malformed payload" in capsys.readouterr().out


def test_exit_code_fatal_on_missing_template(write_config: Path, capsys):
    (write_config.parent.parent / "templates" / "offline_players.html").unlink()
    with patch.object(PlayersClient, "fetch", return_value=TWO_STORES) as fetch:
        assert main([]) == EXIT_FATAL
    fetch.assert_not_called()
    assert "mail template initialization failed" in capsys.readouterr().out


def test_rejected_players_do_not_change_exit_code(write_config: Path, capsys):
    body = payload(raw_record(id="1"), raw_record(id="oops"), raw_record(id="3", timezone_diff=""))
    with patch.object(PlayersClient, "fetch", return_value=body), \
         patch("player_watch.mail.mailer.smtplib.SMTP"):
        code = main([])

    assert code == EXIT_SUCCESS_ALL
    assert _summary(capsys.readouterr().out) == (3, 2, 1, 1, 1, 0, 0)


def test_inspect_data_sends_nothing(write_config: Path, capsys):
    with patch.object(PlayersClient, "fetch", return_value=TWO_STORES), \
         patch("player_watch.mail.mailer.smtplib.SMTP") as smtp_cls:
        code = main(["--inspect-data"])

    assert code == EXIT_SUCCESS_ALL
    smtp_cls.assert_not_called()
    out = capsys.readouterr().out
    assert "players=3 rejected=0 eligible=2 stores=2" in out
    assert "STORE: S-1042 (1042) players=1" in out
    assert "STORE: 2000 (2000) players=1" in out
