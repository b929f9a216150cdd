"""Unit tests for the report runner, exporter wiring and CLI"""

import csv
from datetime import timedelta
from functools import partial
from unittest.mock import MagicMock, patch

import pytest
from imapclient.response_types import Address, Envelope

from domain.mail.errors import ConfigurationError, MailboxError
from domain.reports.orders import ORDER_SUBJECT
from domain.reports.shipping import SHIPPING_SUBJECT
from infrastructure.mail.imap_mailbox import ImapMailbox
from reports import cli
from reports.service import ReportRunner, default_output_path, export_report

ORDER_BODY = "【商品情報】\n9900000006808 ポケモンカードゲーム BOX (1個) 小計 5,500円\n【ご請求金額】\n"


@pytest.fixture
def runner(fake_mailbox, clock):
    return ReportRunner(lambda: fake_mailbox, provider="icloud", days=7, max_messages=100, clock=clock)


class TestReportRunner:

    def test_orders_rechecks_subject_and_fetches_matches(self, runner, fake_mailbox, make_message):
        fake_mailbox.add(
            make_message("1", subject=ORDER_SUBJECT, body=ORDER_BODY, to=("a@example.com",)),
            make_message("2", subject="newsletter", body=ORDER_BODY),
        )
        result = runner.run("orders")
        assert result.report == "orders"
        assert len(result.rows) == 1
        assert result.rows[0].jan == "9900000006808"
        assert result.scanned == 2
        assert result.summary["hit_rate"] == 0.5
        assert fake_mailbox.fetched == ["1"]

    def test_search_window_and_limit(self, runner, fake_mailbox, now):
        runner.run("shipping")
        call = fake_mailbox.search_calls[0]
        assert call["since"] == now - timedelta(days=7)
        assert call["subjects"] == [SHIPPING_SUBJECT]
        assert call["limit"] is None

    def test_lottery_uses_envelopes_only(self, runner, fake_mailbox, make_message):
        fake_mailbox.add(
            make_message("1", subject="抽選販売 当選のお知らせ", to=("a@example.com",)),
            make_message("2", subject="抽選結果のお知らせ", to=("b@example.com",)),
        )
        result = runner.run("lottery")
        assert [(r.mail, r.result) for r in result.rows] == [("a@example.com", "o"), ("b@example.com", "x")]
        assert fake_mailbox.fetched == []

    def test_lottery_extra_win_keyword(self, runner, fake_mailbox, make_message):
        fake_mailbox.add(make_message("1", subject="当せんのお知らせ", to=("a@example.com",)))
        result = runner.run("lottery", win_keywords=["当せん"])
        assert result.rows[0].result == "o"
        assert fake_mailbox.search_calls[0]["subjects"] == ["当選", "当せん", "抽選結果"]

    def test_unknown_report(self, runner):
        with pytest.raises(ValueError):
            runner.run("invoices")

    def test_rejects_non_positive_days(self, fake_mailbox):
        with pytest.raises(ValueError):
            ReportRunner(lambda: fake_mailbox, provider="icloud", days=0)

    def test_max_messages_counts_matching_mail_only(self, fake_mailbox, make_message, clock):
        fake_mailbox.add(*[make_message(str(i), subject="newsletter", minutes_ago=i) for i in range(1, 6)])
        fake_mailbox.add(make_message("old", subject=ORDER_SUBJECT, body=ORDER_BODY, minutes_ago=600))
        runner = ReportRunner(lambda: fake_mailbox, provider="icloud", max_messages=3, clock=clock)

        result = runner.run("orders")

        assert fake_mailbox.fetched == ["old"]
        assert len(result.rows) == 1
        assert result.scanned == 6

    def test_max_messages_keeps_newest_matches(self, fake_mailbox, make_message, clock):
        fake_mailbox.add(
            make_message("1", subject="当選のお知らせ", to=("a@example.com",), minutes_ago=1),
            make_message("2", subject="抽選結果のお知らせ", to=("b@example.com",), minutes_ago=2),
            make_message("3", subject="抽選結果のお知らせ", to=("c@example.com",), minutes_ago=3),
        )
        runner = ReportRunner(lambda: fake_mailbox, provider="icloud", max_messages=2, clock=clock)
        result = runner.run("lottery")
        assert [r.mail for r in result.rows] == ["a@example.com", "b@example.com"]


class TestReportRunnerWithImap:

    def test_old_match_behind_newer_mail_is_reported(self, now, clock):
        client = MagicMock()
        client.search.return_value = [1, 2, 3, 4, 5, 6]
        client.fetch.return_value = {
            uid: {
                b"ENVELOPE": Envelope(
                    date=None,
                    subject="当選のお知らせ".encode("utf-8") if uid == 1 else b"newsletter",
                    from_=(Address(b"Shop", None, b"no-reply", b"shop.example.jp"),),
                    sender=None,
                    reply_to=None,
                    to=(Address(None, None, b"winner", b"example.com"),),
                    cc=None,
                    bcc=None,
                    in_reply_to=None,
                    message_id=None,
                ),
                b"INTERNALDATE": now - timedelta(days=2) + timedelta(minutes=uid),
            }
            for uid in range(1, 7)
        }
        factory = partial(
            ImapMailbox,
            host="imap.mail.me.com",
            port=993,
            username="me@icloud.com",
            password="app-password",
            client_class=MagicMock(return_value=client),
        )
        runner = ReportRunner(factory, provider="icloud", max_messages=3, clock=clock)

        result = runner.run("lottery")

        assert [(r.mail, r.result) for r in result.rows] == [("winner@example.com", "o")]
        assert result.scanned == 6


class TestExportReport:

    def test_default_output_path(self):
        assert default_output_path("gmail", "orders", "xlsx") == "gmail_orders.xlsx"

    def test_writes_csv_to_default_path(self, runner, fake_mailbox, make_message, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        fake_mailbox.add(make_message("1", subject=ORDER_SUBJECT, body=ORDER_BODY, to=("a@example.com",)))
        path = export_report(runner.run("orders"))
        assert path == "icloud_orders.csv"
        with open(tmp_path / path, encoding="utf-8", newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0] == ["Date", "To", "JAN", "Product Name", "Qty", "Subtotal"]
        assert rows[1][1:] == ["a@example.com", "9900000006808", "ポケモンカードゲーム BOX", "1", "5,500円"]

    def test_writes_xlsx(self, runner, tmp_path):
        path = export_report(runner.run("shipping"), str(tmp_path / "ship.xlsx"), fmt="xlsx")
        assert (tmp_path / "ship.xlsx").exists()
        assert path.endswith("ship.xlsx")

    def test_unknown_format(self, runner):
        with pytest.raises(ValueError):
            export_report(runner.run("orders"), "x.pdf", fmt="pdf")


class TestCli:

    @pytest.fixture(autouse=True)
    def quiet_logging(self):
        with patch("reports.cli.configure_logging"):
            yield

    def test_success_writes_file(self, fake_mailbox, make_message, tmp_path):
        fake_mailbox.add(make_message("1", subject="当選", to=("a@example.com",)))
        output = tmp_path / "lottery.csv"
        with patch("reports.cli.build_mailbox_factory", return_value=lambda: fake_mailbox):
            code = cli.main(["lottery", "--provider", "icloud", "--output", str(output)])
        assert code == 0
        assert output.read_text(encoding="utf-8").splitlines()[1] == "a@example.com,o"

    def test_configuration_error_exits_2(self, tmp_path):
        with patch("reports.cli.build_mailbox_factory", side_effect=ConfigurationError("Missing ICLOUD_USER")):
            code = cli.main(["orders", "--output", str(tmp_path / "o.csv")])
        assert code == 2

    def test_mailbox_error_exits_1(self, fake_mailbox, tmp_path):
        fake_mailbox.error = MailboxError("IMAP search failed")
        with patch("reports.cli.build_mailbox_factory", return_value=lambda: fake_mailbox):
            code = cli.main(["orders", "--output", str(tmp_path / "o.csv")])
        assert code == 1
        assert not (tmp_path / "o.csv").exists()

    def test_invalid_days_exits_2(self):
        assert cli.main(["orders", "--days", "0"]) == 2

    def test_unknown_report_rejected_by_argparse(self):
        with pytest.raises(SystemExit):
            cli.main(["invoices"])
