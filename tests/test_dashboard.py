"""Tests for the HTML dashboard renderer."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from helpers import EPOCH, MB, make_sample
from prove_perf import (
    FAST_THRESHOLD_MS,
    MEDIUM_THRESHOLD_MS,
    classify_duration,
    grand_summary,
    render_dashboard,
    save_dashboard,
    summarize_by_label,
)
from prove_perf._dashboard import CHART_JS_URL

GENERATED_AT = datetime(2025, 6, 1, 8, 30, 0, tzinfo=timezone.utc)


def render(samples, **kwargs):
    summaries = list(summarize_by_label(samples).values())
    return render_dashboard(samples, summaries, generated_at=GENERATED_AT, **kwargs)


@pytest.fixture
def samples():
    return [
        make_sample("Setup", 50, heap_used_delta=MB, heap_total_after=40 * MB, index=0),
        make_sample("Setup", 450, heap_used_delta=2 * MB, heap_total_after=41 * MB, index=1),
        make_sample("Verify", 1500, heap_used_delta=0, heap_total_after=39 * MB, index=2),
    ]


class TestClassifyDuration:
    @pytest.mark.parametrize(
        "duration_ms,expected",
        [
            (0.0, "fast"),
            (99.99, "fast"),
            (100.0, "medium"),
            (999.99, "medium"),
            (1000.0, "slow"),
            (60_000, "slow"),
        ],
    )
    def test_fixed_buckets(self, duration_ms, expected):
        assert classify_duration(duration_ms) == expected

    def test_thresholds_are_constants(self):
        assert FAST_THRESHOLD_MS == 100.0
        assert MEDIUM_THRESHOLD_MS == 1000.0


class TestRenderDashboard:
    def test_zero_samples_renders_placeholder(self):
        page = render_dashboard([], [], generated_at=GENERATED_AT)
        assert "No samples recorded" in page
        assert "<canvas" not in page
        assert "<!DOCTYPE html>" in page

    def test_idempotent(self, samples):
        assert render(samples) == render(list(samples))

    def test_generated_at_in_footer(self, samples):
        assert "Generated on 2025-06-01 08:30:00 UTC" in render(samples)

    def test_charts_and_table(self, samples):
        page = render(samples)
        for chart_id in ("timeChart", "memoryChart", "timeDistributionChart"):
            assert f'id="{chart_id}"' in page
        assert CHART_JS_URL in page
        assert page.count("<tr>") == 1 + len(samples)
        assert "badge-fast" in page
        assert "badge-medium" in page
        assert "badge-slow" in page
        assert EPOCH.strftime("%Y-%m-%d %H:%M:%S UTC") in page

    def test_series_runs_follow_longest_operation(self, samples):
        page = render(samples)
        assert '"runs": ["Run 1", "Run 2"]' in page
        assert '"operation": "Verify", "timesMs": [1500.0]' in page

    def test_embeds_raw_metrics(self, samples):
        page = render(samples)
        assert "const metricsData = [" in page
        assert '"peakMemoryMB": 40.0' in page

    def test_stat_cards(self, samples):
        page = render(samples)
        assert "Total Operations" in page
        assert '<div class="stat-value">3</div>' in page

    def test_grand_summary_cards(self, samples):
        page = render(samples, grand_summary=grand_summary(samples))
        assert '<div class="stat-label">Total Duration</div>' in page
        assert '<div class="stat-value">2000.00 <span class="stat-unit">ms</span></div>' in page
        assert '<div class="stat-value">666.67 <span class="stat-unit">ms</span></div>' in page
        assert '<div class="stat-value">3.00 <span class="stat-unit">MB</span></div>' in page

    def test_no_grand_summary_cards_by_default(self, samples):
        assert "Total Duration" not in render(samples)

    def test_labels_are_escaped(self):
        hostile = "<script>alert(1)</script>"
        page = render([make_sample(hostile, 5)])
        assert hostile not in page
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in page

    def test_metadata_section(self, samples):
        page = render(samples, metadata={"Platform": "linux (x86_64)", "Total Tests": 3})
        assert '<div class="metadata-label">Platform</div>' in page
        assert "linux (x86_64)" in page

    def test_no_metadata_section_by_default(self, samples):
        assert 'class="metadata"' not in render(samples)


class TestSaveDashboard:
    def test_writes_file(self, samples, tmp_path: Path):
        path = save_dashboard(render(samples), tmp_path / "out" / "dashboard.html")
        assert path.read_text() == render(samples)
