"""
Unit tests for the command line interface.

Tests cover:
1. User and sale administration commands
2. bid place success and refusal outputs
3. Request validation exit code
4. Liveness toggle flag
5. Demo scenario
6. Log file option
7. Storage failures reported without a traceback
"""

import json

import pytest
from click.testing import CliRunner

from bidengine.cli.main import cli
from bidengine.core.errors import StorageError
from bidengine.core.storage import StorageManager


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, tmp_path):
    """Run the CLI against a fresh data directory."""
    base = ["--data-dir", str(tmp_path / "data"), "--env-file", str(tmp_path / "missing.env")]

    def run(*args):
        return runner.invoke(cli, base + list(args), env={"BIDENGINE_LOG_LEVEL": "WARNING"})

    return run


def parse_json(result):
    text = result.output
    return json.loads(text[text.index("{"):text.rindex("}") + 1])


@pytest.fixture
def populated(invoke):
    """alice (200 credit), seller, and sale #1 starting at 150."""
    assert invoke("user", "add", "--email", "alice@example.com", "--first-name", "Alice", "--credit", "200").exit_code == 0
    assert invoke("user", "add", "--email", "seller@example.com").exit_code == 0
    result = invoke("sale", "add", "--seller", "seller@example.com", "--starting-price", "150", "--item-name", "Lamp")
    assert result.exit_code == 0
    assert "Sale created: #1" in result.output
    return invoke


class TestAdministration:
    """Tests for db, user and sale commands."""

    def test_db_init(self, invoke, tmp_path):
        result = invoke("db", "init")
        assert result.exit_code == 0
        assert (tmp_path / "data" / "auction.db").exists()

    def test_duplicate_user(self, invoke):
        invoke("user", "add", "--email", "alice@example.com")
        result = invoke("user", "add", "--email", "alice@example.com")
        assert result.exit_code == 1

    def test_negative_credit_rejected(self, invoke):
        result = invoke("user", "add", "--email", "alice@example.com", "--credit", "-5")
        assert result.exit_code == 2

    def test_user_show(self, populated):
        result = populated("user", "show", "alice@example.com")
        assert result.exit_code == 0
        assert parse_json(result)["credit"] == 200

    def test_user_show_missing(self, invoke):
        assert invoke("user", "show", "ghost@example.com").exit_code == 1

    def test_sale_add_unknown_seller(self, invoke):
        result = invoke("sale", "add", "--seller", "ghost@example.com", "--starting-price", "10")
        assert result.exit_code == 1

    def test_sale_list(self, populated):
        result = populated("sale", "list")
        assert result.exit_code == 0
        assert "#1 Lamp [ONGOING]" in result.output

    def test_sale_list_empty(self, invoke):
        assert "No sales found." in invoke("sale", "list").output

    def test_sale_show(self, populated):
        result = populated("sale", "show", "1")
        assert result.exit_code == 0
        payload = parse_json(result)
        assert payload["sale_price"] == 150
        assert payload["bids"] == []


class TestBidPlace:
    """Tests for the bid place command."""

    def test_accepted(self, populated):
        result = populated("bid", "place", "--sale", "1", "--as", "alice@example.com", "--amount", "160")
        assert result.exit_code == 0

        payload = parse_json(result)
        assert payload["user"]["credit"] == 40
        assert payload["sale"]["sale_price"] == 160
        assert payload["sale"]["bids"][0]["bid_amount"] == 160

    def test_persisted(self, populated):
        populated("bid", "place", "--sale", "1", "--as", "alice@example.com", "--amount", "160")
        payload = parse_json(populated("sale", "show", "1"))
        assert payload["sale_price"] == 160
        assert payload["bids"][0]["bidder_name"] == "Alice"

    def test_too_low(self, populated):
        result = populated("bid", "place", "--sale", "1", "--as", "alice@example.com", "--amount", "150")
        assert result.exit_code == 1

        payload = parse_json(result)
        assert payload["code"] == "bid.amount.tooLow"
        assert payload["retryable"] is False

    def test_seller_refused(self, populated):
        result = populated("bid", "place", "--sale", "1", "--as", "seller@example.com", "--amount", "500")
        assert parse_json(result)["code"] == "bid.user.isSeller"

    def test_unknown_sale(self, populated):
        result = populated("bid", "place", "--sale", "42", "--as", "alice@example.com", "--amount", "500")
        assert result.exit_code == 1
        assert parse_json(result)["category"] == "not_found"

    def test_invalid_amount(self, populated):
        result = populated("bid", "place", "--sale", "1", "--as", "alice@example.com", "--amount", "0")
        assert result.exit_code == 2

    def test_enforce_liveness_flag(self, populated):
        populated("sale", "add", "--seller", "seller@example.com", "--starting-price", "10", "--ends-in-hours", "-1")

        result = populated("bid", "place", "--sale", "2", "--as", "alice@example.com",
                           "--amount", "20", "--enforce-liveness")
        assert parse_json(result)["code"] == "bid.sale.over"

        result = populated("bid", "place", "--sale", "2", "--as", "alice@example.com", "--amount", "20")
        assert result.exit_code == 0


class TestStorageFailure:
    """Storage faults end in a ❌ line, not a traceback."""

    @pytest.fixture
    def broken(self, populated, monkeypatch):
        def fail(*args, **kwargs):
            raise StorageError("Storage backend failure")

        monkeypatch.setattr(StorageManager, "load_sale_with_bids", fail)
        monkeypatch.setattr(StorageManager, "load_user_by_identity", fail)
        monkeypatch.setattr(StorageManager, "list_sales", fail)
        return populated

    @pytest.mark.parametrize("args", [
        ("sale", "show", "1"),
        ("sale", "list"),
        ("user", "show", "alice@example.com"),
        ("bid", "place", "--sale", "1", "--as", "alice@example.com", "--amount", "160"),
    ])
    def test_reported_cleanly(self, broken, args):
        result = broken(*args)

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "❌" in result.output
        assert "Storage backend failure" in result.output
        assert "Traceback" not in result.output

    def test_sale_add_reported_cleanly(self, broken):
        result = broken("sale", "add", "--seller", "seller@example.com", "--starting-price", "10")
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Sale creation failed" in result.output


class TestDemo:
    """Tests for the demo command."""

    def test_demo(self, runner):
        result = runner.invoke(cli, ["--env-file", "does-not-exist.env", "demo"], env={"BIDENGINE_LOG_LEVEL": "WARNING"})
        assert result.exit_code == 0
        assert "bid.amount.tooLow" in result.output
        assert "bid.user.isSeller" in result.output
        assert "bid.user.credit.insufficient" in result.output
        assert "Current price: 180 (2 bids)" in result.output


class TestLogging:
    """Tests for the global logging options."""

    def test_log_file(self, runner, tmp_path):
        log_dir = tmp_path / "logs"
        result = runner.invoke(
            cli,
            ["--log-file", "--data-dir", str(tmp_path / "data"), "--env-file", str(tmp_path / "none.env"), "db", "init"],
            env={"BIDENGINE_LOG_DIR": str(log_dir), "BIDENGINE_LOG_LEVEL": "INFO"},
        )
        assert result.exit_code == 0
        assert "StorageManager initialized" in (log_dir / "bidengine.log").read_text()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
