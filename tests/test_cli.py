"""Tests for the duet CLI.

Covers every command via CliRunner with fake provider adapters and a
temporary state directory.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from duet import __version__
from duet.cli import app
from duet.providers.base import ProviderAdapter
from duet.schemas.execution import ProviderResponse, VisualAsset
from duet.schemas.providers import ProviderConfig
from duet.schemas.tasks import ProviderId

# NO_COLOR=1 prevents Rich from injecting ANSI codes inside option names,
# which breaks substring matching in CI (headless, no TTY).
# COLUMNS=200 prevents wrapping that could split a flag across lines.
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})

_BUILD_ADAPTERS = "duet.cli.build_adapters"


# ── Fakes ──────────────────────────────────────────────────────────


class _FakeAdapter(ProviderAdapter):
    def __init__(self, provider: ProviderId, error: Exception | None = None) -> None:
        super().__init__(ProviderConfig(
            provider_id=provider,
            model=f"{provider.value}-model",
            display_name=provider.value,
            api_key_env="TEST_KEY",
            visual_model="image-model" if provider is ProviderId.FAST else None,
        ))
        self.error = error

    async def invoke(self, task_id, payload, *, task=None):
        if self.error is not None:
            raise self.error
        return ProviderResponse(
            analysis_text=f"{self.provider_id.value} analysis for {task_id}",
            recommendations=["Shift budget toward retargeting audiences"],
            confidence=0.8,
            cost_incurred=0.01,
            tokens_used=120,
        )

    async def generate_visual(self, brief):
        return VisualAsset(
            asset_ref="https://img.example/banner.png", cost=0.04,
            description=brief.description,
        )


def _adapters(quality_error=None, fast_error=None):
    return {
        ProviderId.QUALITY: _FakeAdapter(ProviderId.QUALITY, quality_error),
        ProviderId.FAST: _FakeAdapter(ProviderId.FAST, fast_error),
    }


def _invoke(tmp_path: Path, *args: str, adapters=None):
    with patch(_BUILD_ADAPTERS, return_value=adapters or _adapters()):
        return runner.invoke(app, ["--state", str(tmp_path / "state"), *args])


# ── Help & version ─────────────────────────────────────────────────


class TestHelp:
    def test_main_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("tasks", "route", "run", "metrics", "feedback", "config"):
            assert command in result.output

    def test_run_help(self):
        result = runner.invoke(app, ["run", "--help"])
        assert result.exit_code == 0
        assert "--both" in result.output
        assert "--payload" in result.output

    def test_config_help(self):
        result = runner.invoke(app, ["config", "--help"])
        assert result.exit_code == 0
        assert "show" in result.output
        assert "set" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


# ── tasks / route ──────────────────────────────────────────────────


class TestTasksAndRoute:
    def test_tasks_lists_catalogue(self):
        result = runner.invoke(app, ["tasks"])
        assert result.exit_code == 0
        assert "quick-insights" in result.output
        assert "funnel-analysis" in result.output
        assert "13 tasks registered" in result.output

    def test_route_pinned(self, tmp_path):
        result = _invoke(tmp_path, "route", "quick-insights")
        assert result.exit_code == 0
        assert "quick-insights → fast" in result.output
        assert "pinned" in result.output

    def test_route_forced(self, tmp_path):
        result = _invoke(tmp_path, "route", "quick-insights", "--force", "quality")
        assert result.exit_code == 0
        assert "→ quality" in result.output
        assert "forced" in result.output

    def test_route_unknown_provider(self, tmp_path):
        result = _invoke(tmp_path, "route", "quick-insights", "--force", "slow")
        assert result.exit_code == 1
        assert "Unknown provider" in result.output


# ── run ────────────────────────────────────────────────────────────


class TestRun:
    def test_single_run(self, tmp_path):
        result = _invoke(tmp_path, "run", "quick-insights", "--payload", '{"ctr": 0.01}')
        assert result.exit_code == 0
        assert "fast analysis for quick-insights" in result.output
        assert "Shift budget toward retargeting audiences" in result.output
        metrics = json.loads((tmp_path / "state" / "performance_metrics.json").read_text())
        assert metrics[0]["provider_id"] == "fast"

    def test_payload_from_file(self, tmp_path):
        payload = tmp_path / "payload.json"
        payload.write_text('{"spend": 120}')
        result = _invoke(tmp_path, "run", "funnel-analysis", "--payload-file", str(payload))
        assert result.exit_code == 0
        assert "quality analysis for funnel-analysis" in result.output

    def test_invalid_payload(self, tmp_path):
        result = _invoke(tmp_path, "run", "quick-insights", "--payload", "{oops")
        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    def test_payload_must_be_object(self, tmp_path):
        result = _invoke(tmp_path, "run", "quick-insights", "--payload", "[1, 2]")
        assert result.exit_code == 1
        assert "JSON object" in result.output

    def test_failed_single_run_exits_nonzero(self, tmp_path):
        adapters = _adapters(fast_error=RuntimeError("fast is down"))
        result = _invoke(tmp_path, "run", "quick-insights", adapters=adapters)
        assert result.exit_code == 1
        assert "fast is down" in result.output

    def test_both_shows_consensus(self, tmp_path):
        result = _invoke(tmp_path, "run", "campaign-optimization", "--both")
        assert result.exit_code == 0
        assert "Consensus" in result.output
        assert "Both providers recommend" in result.output

    def test_both_with_one_failure(self, tmp_path):
        adapters = _adapters(quality_error=RuntimeError("quality is down"))
        result = _invoke(tmp_path, "run", "campaign-optimization", "--both", adapters=adapters)
        assert result.exit_code == 0
        assert "quality failed" in result.output
        assert "No consensus" in result.output

    def test_both_fail(self, tmp_path):
        adapters = _adapters(
            quality_error=RuntimeError("a"), fast_error=RuntimeError("b"),
        )
        result = _invoke(tmp_path, "run", "campaign-optimization", "--both", adapters=adapters)
        assert result.exit_code == 1
        assert "Both providers failed" in result.output


# ── visual ─────────────────────────────────────────────────────────


class TestVisual:
    def test_generates_asset(self, tmp_path):
        result = _invoke(
            tmp_path, "visual",
            "--description", "Summer sale", "--audience", "students",
            "--platform", "instagram",
        )
        assert result.exit_code == 0
        assert "https://img.example/banner.png" in result.output


# ── metrics / feedback ─────────────────────────────────────────────


class TestMetricsAndFeedback:
    def test_metrics_empty(self, tmp_path):
        result = _invoke(tmp_path, "metrics")
        assert result.exit_code == 0
        assert "No performance history" in result.output

    def test_metrics_after_run(self, tmp_path):
        _invoke(tmp_path, "run", "quick-insights")
        result = _invoke(tmp_path, "metrics")
        assert result.exit_code == 0
        assert "quick-insights" in result.output
        assert "100%" in result.output

    def test_feedback_after_run(self, tmp_path):
        _invoke(tmp_path, "run", "quick-insights")
        result = _invoke(tmp_path, "feedback", "quick-insights", "fast", "0.3")
        assert result.exit_code == 0
        assert "satisfaction now 0.70" in result.output

    def test_feedback_without_history(self, tmp_path):
        result = _invoke(tmp_path, "feedback", "quick-insights", "fast", "0.3")
        assert result.exit_code == 1
        assert "feedback ignored" in result.output

    def test_feedback_rejects_auto(self, tmp_path):
        result = _invoke(tmp_path, "feedback", "quick-insights", "auto", "0.3")
        assert result.exit_code == 1
        assert "concrete provider" in result.output

    def test_feedback_score_range(self, tmp_path):
        result = _invoke(tmp_path, "feedback", "quick-insights", "fast", "1.5")
        assert result.exit_code != 0


# ── config ─────────────────────────────────────────────────────────


class TestConfig:
    def test_show_defaults(self, tmp_path):
        result = _invoke(tmp_path, "config", "show")
        assert result.exit_code == 0
        assert "Default Provider" in result.output
        assert "auto" in result.output
        assert "$50.00" in result.output

    def test_set_and_show(self, tmp_path):
        result = _invoke(
            tmp_path, "config", "set",
            "--quality-first", "--no-cost-optimization", "--daily", "20",
        )
        assert result.exit_code == 0
        assert "Configuration saved" in result.output
        saved = json.loads((tmp_path / "state" / "router_config.json").read_text())
        assert saved["quality_first"] is True
        assert saved["cost_optimization"] is False
        assert saved["budget_limits"] == {"daily": 20.0, "monthly": 1000.0}

        shown = _invoke(tmp_path, "config", "show")
        assert "$20.00" in shown.output

    def test_override_routes_task(self, tmp_path):
        result = _invoke(
            tmp_path, "config", "set", "--override", "budget-optimization=quality",
        )
        assert result.exit_code == 0

        routed = _invoke(tmp_path, "route", "budget-optimization")
        assert "→ quality" in routed.output
        assert "override" in routed.output

        cleared = _invoke(
            tmp_path, "config", "set", "--clear-override", "budget-optimization",
        )
        assert cleared.exit_code == 0
        saved = json.loads((tmp_path / "state" / "router_config.json").read_text())
        assert saved["per_task_override"] == {}

    def test_malformed_override(self, tmp_path):
        result = _invoke(tmp_path, "config", "set", "--override", "budget-optimization")
        assert result.exit_code == 1
        assert "TASK=PROVIDER" in result.output

    def test_auto_override_rejected(self, tmp_path):
        result = _invoke(tmp_path, "config", "set", "--override", "budget-optimization=auto")
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_nothing_to_change(self, tmp_path):
        result = _invoke(tmp_path, "config", "set")
        assert result.exit_code == 0
        assert "Nothing to change" in result.output

    def test_sqlite_state(self, tmp_path):
        db = tmp_path / "duet.db"
        with patch(_BUILD_ADAPTERS, return_value=_adapters()):
            result = runner.invoke(
                app, ["--state", str(db), "config", "set", "--quality-first"],
            )
            shown = runner.invoke(app, ["--state", str(db), "config", "show"])
        assert result.exit_code == 0
        assert db.exists()
        assert "Quality First" in shown.output
        assert "True" in shown.output
