"""Tests for the click command-line interface."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner
from yieldsync.cli import cli
from yieldsync.database import Database


@pytest.fixture
def runner():
    return CliRunner()


class TestPoolCommands:
    def test_add_pool_and_list(self, runner, fresh_config):
        result = runner.invoke(
            cli,
            ["add-pool", "morpho-usdc", "-p", "Morpho", "-n", "Steakhouse USDC", "-c", "base", "-a", "0xabc"],
        )
        assert result.exit_code == 0, result.output
        assert "Pool morpho-usdc saved" in result.output

        pool = Database(fresh_config.database_path).get_pool("morpho-usdc")
        assert pool.chain_id == 8453
        assert pool.address == "0xabc"

        result = runner.invoke(cli, ["pools"])
        assert "[morpho-usdc] Steakhouse USDC" in result.output
        assert "1 active of 1 total" in result.output

    def test_add_pool_numeric_chain(self, runner, fresh_config):
        result = runner.invoke(cli, ["add-pool", "p1", "-p", "Morpho", "-c", "10"])
        assert result.exit_code == 0
        assert Database(fresh_config.database_path).get_pool("p1").chain_id == 10

    def test_add_pool_unknown_chain(self, runner, fresh_config):
        result = runner.invoke(cli, ["add-pool", "p1", "-p", "Morpho", "-c", "narnia"])
        assert result.exit_code == 1
        assert "Unknown chain" in result.output

    def test_inactive_pools_hidden(self, runner, fresh_config):
        runner.invoke(cli, ["add-pool", "old", "-p", "Lido", "--inactive"])
        assert "No pools found" in runner.invoke(cli, ["pools"]).output
        assert "[old]" in runner.invoke(cli, ["pools", "--all"]).output

    def test_deactivate_and_activate(self, runner, fresh_config):
        runner.invoke(cli, ["add-pool", "p1", "-p", "Lido"])

        result = runner.invoke(cli, ["deactivate", "p1"])
        assert result.exit_code == 0
        assert "Pool p1 deactivated" in result.output
        assert Database(fresh_config.database_path).get_pool("p1").is_active is False

        runner.invoke(cli, ["activate", "p1"])
        assert Database(fresh_config.database_path).get_pool("p1").is_active is True

    def test_activate_unknown_pool(self, runner, fresh_config):
        result = runner.invoke(cli, ["activate", "ghost"])
        assert result.exit_code == 1
        assert "Pool not found: ghost" in result.output


class TestJobCommands:
    def test_jobs_lists_defaults(self, runner, fresh_config):
        result = runner.invoke(cli, ["jobs"])
        assert result.exit_code == 0
        assert "pool_data_sync" in result.output
        assert "Every 5 min" in result.output

    def test_set_job(self, runner, fresh_config):
        result = runner.invoke(cli, ["set-job", "pool_data_sync", "--interval", "10", "--disable"])
        assert result.exit_code == 0, result.output
        assert "every 10 min, disabled" in result.output

        job = Database(fresh_config.database_path).get_job_config("pool_data_sync")
        assert job.interval_minutes == 10
        assert job.enabled is False

    def test_set_job_rejects_zero_interval(self, runner, fresh_config):
        result = runner.invoke(cli, ["set-job", "pool_data_sync", "--interval", "0"])
        assert result.exit_code == 1
        assert "at least 1 minute" in result.output
        assert Database(fresh_config.database_path).get_job_config("pool_data_sync").interval_minutes == 5

    def test_set_job_unknown(self, runner, fresh_config):
        result = runner.invoke(cli, ["set-job", "nope", "--enable"])
        assert result.exit_code == 1
        assert "Job not found" in result.output

    def test_set_job_requires_a_change(self, runner, fresh_config):
        result = runner.invoke(cli, ["set-job", "pool_data_sync"])
        assert result.exit_code == 1


class TestSweepCommands:
    def test_sweep(self, runner, services):
        with patch("yieldsync.cli.build_services", return_value=services):
            result = runner.invoke(cli, ["sweep"])

        # morpho-base-weth has no data, so the sweep reports a failure
        assert result.exit_code == 1
        assert "Success:  2" in result.output
        assert "Failed:   1" in result.output
        assert services.db.get_pool("lido-steth").apy == 2.91

    def test_sweep_pool(self, runner, services):
        with patch("yieldsync.cli.build_services", return_value=services):
            result = runner.invoke(cli, ["sweep-pool", "morpho-usdc"])

        assert result.exit_code == 0, result.output
        assert "APY: 4.38%" in result.output
        assert "TVL: 1,250,000.00" in result.output

    def test_sweep_pool_not_found(self, runner, services):
        with patch("yieldsync.cli.build_services", return_value=services):
            result = runner.invoke(cli, ["sweep-pool", "ghost"])

        assert result.exit_code == 1
        assert "Pool not found: ghost" in result.output

    def test_sources(self, runner, services):
        with patch("yieldsync.cli.build_services", return_value=services):
            result = runner.invoke(cli, ["sources"])

        assert "2 sources:" in result.output
        assert "  - Lido" in result.output
