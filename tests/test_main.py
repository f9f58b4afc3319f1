"""Tests for the command line entrypoint in ecr_cleaner/main.py"""

import json
import re
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from ecr_cleaner import main as cli
from ecr_cleaner.utils.config_manager import ConfigManager
from ecr_cleaner.utils.error_utils import AggregationError, DeletionError, NotificationError, ScanError

PLAN = {"web": ["v1", "v2"]}


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("CONFIG_FILE", raising=False)
    monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)
    path = tmp_path / "cleaner.yaml"
    path.write_text(ConfigManager.dump_example_config())
    return str(path)


@pytest.fixture
def cleaner(mocker):
    fake = MagicMock()
    fake.registry_name = "my-registry"
    fake.plan = AsyncMock(return_value=dict(PLAN))
    fake.apply = AsyncMock()
    fake.notify = AsyncMock()
    mocker.patch.object(cli.RegistryCleaner, "from_config", AsyncMock(return_value=fake))
    return fake


class TestInit:
    """Tests for the init command"""

    def test_writes_example(self, tmp_path):
        target = tmp_path / "new.yaml"

        assert cli.main(["--config", str(target), "init"]) == 0
        assert yaml.safe_load(target.read_text()) == ConfigManager.example_config()

    def test_never_overwrites(self, tmp_path):
        target = tmp_path / "existing.yaml"
        target.write_text("registry: {}\n")

        assert cli.main(["--config", str(target), "init"]) == 1
        assert target.read_text() == "registry: {}\n"

    def test_stdout(self, tmp_path, capsys):
        target = tmp_path / "unused.yaml"

        assert cli.main(["--config", str(target), "init", "--stdout"]) == 0
        assert "registry:" in capsys.readouterr().out
        assert not target.exists()


class TestPlan:
    """Tests for the plan command"""

    def test_reports_and_never_deletes(self, config_file, cleaner, capsys):
        assert cli.main(["--config", config_file, "plan"]) == 0

        assert "Total: 2 image(s) in 1 repository" in capsys.readouterr().out
        cleaner.apply.assert_not_called()
        cleaner.notify.assert_awaited_once()

    def test_writes_json_report(self, config_file, cleaner, tmp_path):
        output = tmp_path / "reports" / "plan.json"

        assert cli.main(["--config", config_file, "plan", "--output", str(output)]) == 0
        assert output.exists()

    def test_timestamped_report_name(self, config_file, cleaner, tmp_path):
        output = tmp_path / "reports" / "plan.json"

        assert cli.main(["--config", config_file, "plan", "--output", str(output), "--timestamp"]) == 0

        assert not output.exists()
        written = [p.name for p in output.parent.iterdir()]
        assert len(written) == 1
        assert re.fullmatch(r"plan-\d{4}-\d{2}-\d{2}-\d{2}-\d{2}-\d{2}\.json", written[0])
        assert json.loads((output.parent / written[0]).read_text())["mode"] == "plan"

    def test_aggregation_failure_exits_non_zero(self, config_file, cleaner):
        cleaner.plan.side_effect = AggregationError.wrap(ScanError("lambda[prod] failed"))

        assert cli.main(["--config", config_file, "plan"]) == 1

    def test_notification_failure_exits_non_zero(self, config_file, cleaner):
        cleaner.notify.side_effect = NotificationError("Slack rejected the message")

        assert cli.main(["--config", config_file, "plan"]) == 1

    def test_missing_config_exits_non_zero(self, tmp_path, cleaner):
        assert cli.main(["--config", str(tmp_path / "missing.yaml"), "plan"]) == 1


class TestApply:
    """Tests for the apply command"""

    def test_deletes_and_notifies(self, config_file, cleaner):
        assert cli.main(["--config", config_file, "apply", "--force"]) == 0

        cleaner.apply.assert_awaited_once_with(PLAN)
        titles = [c.args[0] for c in cleaner.notify.await_args_list]
        assert titles == ["Images to be deleted from my-registry", "Images deleted from my-registry"]

    def test_timestamped_report_name(self, config_file, cleaner, tmp_path):
        output = tmp_path / "apply.json"

        assert cli.main(["--config", config_file, "apply", "--force", "-o", str(output), "--timestamp"]) == 0

        assert [p.name.startswith("apply-") for p in tmp_path.glob("apply*.json")] == [True]

    def test_confirmation_declined(self, config_file, cleaner, mocker):
        mocker.patch("builtins.input", return_value="no")

        assert cli.main(["--config", config_file, "apply"]) == 0
        cleaner.apply.assert_not_called()

    def test_confirmation_accepted(self, config_file, cleaner, mocker):
        mocker.patch("builtins.input", side_effect=["maybe", "yes"])

        assert cli.main(["--config", config_file, "apply"]) == 0
        cleaner.apply.assert_awaited_once()

    def test_deletion_failure_exits_non_zero(self, config_file, cleaner):
        cleaner.apply.side_effect = DeletionError("batch_delete_image rejected 1 image(s) in web")

        assert cli.main(["--config", config_file, "apply", "--force"]) == 1

    def test_notification_failure_still_deletes(self, config_file, cleaner):
        cleaner.notify.side_effect = NotificationError("webhook gone")

        assert cli.main(["--config", config_file, "apply", "--force"]) == 1
        cleaner.apply.assert_awaited_once_with(PLAN)


class TestCheck:
    """Tests for the check command"""

    def test_exit_status_follows_report(self, config_file, mocker):
        checker = mocker.patch("ecr_cleaner.main.HealthChecker").return_value
        checker.print_health_report.return_value = False

        assert cli.main(["--config", config_file, "check"]) == 1

        checker.print_health_report.return_value = True
        assert cli.main(["--config", config_file, "check"]) == 0
