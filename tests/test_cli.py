"""Tests for CLI commands and help output."""

import io
import json
import sys
from unittest.mock import patch

import httpx
import pytest
from click.testing import CliRunner
from moto import mock_aws

from stackctl.cli import EXIT_INTERRUPTED, cli, main
from stackctl.core.exceptions import ResolutionError, TerraformError
from stackctl.pipeline.readiness import ReadinessPoller


class TestCLIEntryPoint:
    """Tests for the main CLI entry point, flags, and options."""

    def test_help(self, cli_runner: CliRunner):
        result = cli_runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "StackCtl" in result.output
        for command in ("apply", "destroy", "validate", "check", "stages", "config"):
            assert command in result.output

    def test_version(self, cli_runner: CliRunner):
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "stackctl version" in result.output

    def test_unknown_profile(self, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(cli, ["-c", temp_config_file, "-p", "missing", "config"])
        assert result.exit_code == 1

    def test_invalid_output_format(self, cli_runner: CliRunner):
        result = cli_runner.invoke(cli, ["-o", "xml", "config"])
        assert result.exit_code != 0
        assert "Invalid format" in result.output


class TestConfigCommand:
    def test_json_output(self, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(cli, ["-c", temp_config_file, "-o", "json", "config"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["profile"] == "default"
        assert data["image"] == "rstudio:rstudio-server-rc1"
        assert data["load_balancer"] == "rstudio-alb"
        assert data["probe"] == "/auth-sign-in -> 200 (3 x 0s)"


class TestStagesCommand:
    def test_destroy_order(self, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(
            cli, ["-c", temp_config_file, "-o", "json", "stages", "destroy"]
        )

        assert result.exit_code == 0, result.output
        names = [s["name"] for s in json.loads(result.output)]
        assert names == ["cluster", "servers", "secrets", "registry", "directory"]

    def test_apply_is_default(self, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(cli, ["-c", temp_config_file, "-o", "json", "stages"])

        assert result.exit_code == 0, result.output
        names = [s["name"] for s in json.loads(result.output)]
        assert names == ["directory", "servers", "image", "cluster"]


class TestApplyCommand:
    @patch("stackctl.pipeline.stages.TerraformBundle")
    def test_dry_run_touches_nothing(
        self, bundle_cls, cli_runner: CliRunner, temp_config_file: str, aws_credentials
    ):
        result = cli_runner.invoke(
            cli, ["-c", temp_config_file, "--dry-run", "apply", "--skip-preflight"]
        )

        assert result.exit_code == 0, result.output
        assert "Would apply 'directory'" in result.output
        assert "Would build 'image'" in result.output
        bundle_cls.assert_not_called()

    @patch("stackctl.pipeline.preflight.shutil.which", return_value=None)
    def test_preflight_failure_aborts(
        self, _which, cli_runner: CliRunner, temp_config_file: str, aws_credentials
    ):
        with patch("stackctl.pipeline.stages.TerraformBundle") as bundle_cls:
            result = cli_runner.invoke(cli, ["-c", temp_config_file, "--dry-run", "apply"])

        assert result.exit_code == 1
        assert "Environment validation failed" in str(result.exception)
        bundle_cls.assert_not_called()


class TestDestroyCommand:
    def test_cancelled(self, cli_runner: CliRunner, temp_config_file: str):
        with patch("stackctl.commands.pipeline.PipelineRunner") as runner_cls:
            result = cli_runner.invoke(
                cli, ["-c", temp_config_file, "destroy"], input="n\n"
            )

        assert result.exit_code != 0
        assert "Operation cancelled" in result.output
        runner_cls.assert_not_called()


class TestCheckCommand:
    def test_missing_directories(self, cli_runner: CliRunner, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text(f"profiles:\n  default:\n    environment:\n      root_dir: {tmp_path}\n")

        result = cli_runner.invoke(cli, ["-c", str(config_file), "check", "--no-aws"])

        assert result.exit_code == 1
        assert "Environment validation failed" in str(result.exception)

    @patch("stackctl.pipeline.preflight.shutil.which", return_value="/usr/bin/tool")
    def test_ready(self, _which, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(cli, ["-c", temp_config_file, "check", "--no-aws"])

        assert result.exit_code == 0, result.output
        assert "Environment ready" in result.output


class TestStagesListing:
    @patch("stackctl.clients.aws.boto3.Session")
    def test_listing_needs_no_aws_clients(self, session_cls, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(cli, ["-c", temp_config_file, "stages", "destroy"])

        assert result.exit_code == 0, result.output
        session_cls.assert_not_called()


def run_main(monkeypatch, *args: str) -> int:
    """Run the console entry point and return its exit code."""
    monkeypatch.setattr(sys, "argv", ["stackctl", *args])
    with pytest.raises(SystemExit) as exc_info:
        main()
    return exc_info.value.code


def unavailable_poller(requests: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(503)

    def factory(output):
        client = httpx.Client(transport=httpx.MockTransport(handler))
        return ReadinessPoller(output, client=client, sleep=lambda s: None)

    return factory


class TestExitCodes:
    """End-to-end exit codes of the console script."""

    def test_version_exits_cleanly(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["stackctl", "--version"])
        main()
        assert "stackctl version" in capsys.readouterr().out

    def test_usage_error(self, monkeypatch, capsys):
        assert run_main(monkeypatch, "-o", "xml", "config") == 2
        assert "Invalid format" in capsys.readouterr().err

    def test_interrupt_exits_130(self, monkeypatch, capsys, temp_config_file):
        with patch(
            "stackctl.commands.validate.validate_environment",
            side_effect=KeyboardInterrupt,
        ):
            code = run_main(monkeypatch, "-c", temp_config_file, "validate")

        assert code == EXIT_INTERRUPTED == 130
        assert "Interrupted" in capsys.readouterr().err

    def test_declined_prompt_exits_1(self, monkeypatch, capsys, temp_config_file):
        monkeypatch.setattr(sys, "stdin", io.StringIO("n\n"))
        with patch("stackctl.commands.pipeline.PipelineRunner") as runner_cls:
            code = run_main(monkeypatch, "-c", temp_config_file, "destroy")

        assert code == 1
        runner_cls.assert_not_called()
        assert "Aborted!" in capsys.readouterr().err

    @patch("stackctl.commands.validate.Discovery")
    def test_readiness_timeout(self, discovery_cls, monkeypatch, capsys, temp_config_file, aws_credentials):
        discovery_cls.return_value.load_balancer_dns.return_value = "rstudio-alb-1.elb.amazonaws.com"
        discovery_cls.return_value.instance_dns_names.return_value = []
        requests: list[httpx.Request] = []

        with patch("stackctl.commands.validate.ReadinessPoller", side_effect=unavailable_poller(requests)):
            code = run_main(monkeypatch, "-c", temp_config_file, "validate")

        assert code == 1
        assert len(requests) == 3
        err = capsys.readouterr().err
        assert (
            "ERROR: Timed out after 3 attempts waiting for HTTP 200 (last response: HTTP 503)"
            in err
        )

    @patch("stackctl.commands.validate.Discovery")
    def test_unresolved_load_balancer(
        self, discovery_cls, monkeypatch, capsys, temp_config_file, aws_credentials
    ):
        discovery_cls.return_value.instance_dns_names.return_value = []
        discovery_cls.return_value.load_balancer_dns.side_effect = ResolutionError(
            "Failed to retrieve DNS name for load balancer 'rstudio-alb'"
        )
        requests: list[httpx.Request] = []

        with patch("stackctl.commands.validate.ReadinessPoller", side_effect=unavailable_poller(requests)):
            code = run_main(monkeypatch, "-c", temp_config_file, "validate")

        assert code == 1
        assert requests == []
        assert "ERROR: Failed to retrieve DNS name for load balancer 'rstudio-alb'" in capsys.readouterr().err

    @patch("stackctl.pipeline.stages.TerraformBundle")
    def test_failed_apply_stage(self, bundle_cls, monkeypatch, capsys, temp_config_file, aws_credentials):
        bundle_cls.return_value.apply.side_effect = TerraformError("Terraform apply failed")

        with mock_aws():
            code = run_main(monkeypatch, "-c", temp_config_file, "apply", "--skip-preflight")

        assert code == 1
        assert bundle_cls.call_count == 1
        assert "ERROR: Deployment failed at stage 'directory'" in capsys.readouterr().err

    @patch("stackctl.pipeline.stages.TerraformBundle")
    def test_failed_destroy_stage(self, bundle_cls, monkeypatch, capsys, temp_config_file, aws_credentials):
        bundle_cls.return_value.destroy.side_effect = TerraformError("Terraform destroy failed")
        with mock_aws():
            code = run_main(
                monkeypatch, "-c", temp_config_file, "destroy", "--yes", "--skip-preflight"
            )

        assert code == 1
        assert bundle_cls.return_value.destroy.call_count == 1
        assert "ERROR: Teardown failed at stage 'cluster'" in capsys.readouterr().err
