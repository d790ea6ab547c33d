"""Static HTML dashboard for recorded samples.

render_dashboard() is a pure function of its inputs; the only value that
changes between otherwise identical calls is ``generated_at``, and callers
can pin that too.

Charts are drawn by Chart.js loaded from a CDN when the page is viewed, so
the file is not usable offline.
"""

import html
import json
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from beartype import beartype
from loguru import logger

from prove_perf._export import sample_to_metric, write_text_atomic
from prove_perf._memory import BYTES_PER_MB
from prove_perf._models import Sample
from prove_perf._stats import GrandSummary, Summary

CHART_JS_URL = "https://cdn.jsdelivr.net/npm/chart.js@4.4.0/dist/chart.umd.min.js"

# Duration buckets, fixed across versions: < FAST is fast, < MEDIUM is medium.
FAST_THRESHOLD_MS = 100.0
MEDIUM_THRESHOLD_MS = 1000.0

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


@beartype
def classify_duration(duration_ms: int | float) -> str:
    """Return "fast", "medium" or "slow" for a duration in milliseconds."""
    if duration_ms < FAST_THRESHOLD_MS:
        return "fast"
    if duration_ms < MEDIUM_THRESHOLD_MS:
        return "medium"
    return "slow"


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _embed_json(data: Any) -> str:
    # keep "</script>" inside a string from closing the element
    return json.dumps(data).replace("</", "<\\/")


PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <script src="{chart_js_url}"></script>
    <style>
        * {{ margin: 0; padding: 0; box-sizing: border-box; }}
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Ubuntu, sans-serif;
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            min-height: 100vh;
            padding: 20px;
        }}
        .container {{ max-width: 1400px; margin: 0 auto; }}
        header, .chart-container, .metadata-item, .stat-card {{
            background: white;
            border-radius: 16px;
            box-shadow: 0 10px 40px rgba(0, 0, 0, 0.1);
        }}
        header {{ padding: 30px; margin-bottom: 30px; }}
        h1 {{ color: #2d3748; font-size: 2.5rem; margin-bottom: 10px; }}
        .subtitle {{ color: #718096; font-size: 1.1rem; }}
        .metadata {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
            gap: 15px;
            margin-top: 20px;
        }}
        .metadata-item {{ padding: 15px; border-left: 4px solid #667eea; box-shadow: none; background: #f8f9fa; }}
        .metadata-label, .stat-label {{
            color: #718096;
            font-size: 0.85rem;
            text-transform: uppercase;
            letter-spacing: 0.5px;
            margin-bottom: 8px;
        }}
        .metadata-value {{ font-weight: 600; color: #333; }}
        .stats-grid {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(280px, 1fr));
            gap: 20px;
            margin-bottom: 30px;
        }}
        .stat-card {{ padding: 25px; }}
        .stat-value {{ color: #2d3748; font-size: 2rem; font-weight: bold; }}
        .stat-unit {{ color: #a0aec0; font-size: 1rem; font-weight: normal; }}
        .chart-container {{ padding: 30px; margin-bottom: 30px; overflow-x: auto; }}
        .chart-title {{ color: #2d3748; font-size: 1.5rem; margin-bottom: 20px; font-weight: 600; }}
        .placeholder {{ color: #718096; font-size: 1.1rem; text-align: center; padding: 40px; }}
        canvas {{ max-height: 400px; }}
        table {{ width: 100%; border-collapse: collapse; }}
        thead {{ background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; }}
        th, td {{ padding: 14px; text-align: left; }}
        th {{ font-weight: 600; text-transform: uppercase; font-size: 0.85rem; letter-spacing: 0.5px; }}
        tbody tr {{ border-bottom: 1px solid #e2e8f0; }}
        tbody tr:hover {{ background-color: #f7fafc; }}
        .badge {{ display: inline-block; padding: 4px 12px; border-radius: 20px; font-size: 0.85em; font-weight: 600; }}
        .badge-fast {{ background: #d4edda; color: #155724; }}
        .badge-medium {{ background: #fff3cd; color: #856404; }}
        .badge-slow {{ background: #f8d7da; color: #721c24; }}
        .timestamp {{ color: #a0aec0; font-size: 0.9rem; }}
        footer {{ text-align: center; color: white; margin-top: 40px; padding: 20px; }}
    </style>
</head>
<body>
    <div class="container">
        <header>
            <h1>{title}</h1>
            <p class="subtitle">{subtitle}</p>
{metadata_section}
        </header>
{body}
        <footer>
            <p>Generated on {generated_at}</p>
        </footer>
    </div>
</body>
</html>
"""

METADATA_ITEM_TEMPLATE = """                <div class="metadata-item">
                    <div class="metadata-label">{label}</div>
                    <div class="metadata-value">{value}</div>
                </div>"""

STAT_CARD_TEMPLATE = """            <div class="stat-card">
                <div class="stat-label">{label}</div>
                <div class="stat-value">{value}{unit}</div>
            </div>"""

PLACEHOLDER_SECTION = """        <div class="chart-container">
            <h2 class="chart-title">No samples recorded</h2>
            <p class="placeholder">Run a benchmark to populate this dashboard.</p>
        </div>"""

CHARTS_SECTION = """        <div class="stats-grid">
{stat_cards}
        </div>

        <div class="chart-container">
            <h2 class="chart-title">Execution Time Comparison</h2>
            <canvas id="timeChart"></canvas>
        </div>

        <div class="chart-container">
            <h2 class="chart-title">Memory Usage Comparison</h2>
            <canvas id="memoryChart"></canvas>
        </div>

        <div class="chart-container">
            <h2 class="chart-title">Time Distribution</h2>
            <canvas id="timeDistributionChart"></canvas>
        </div>

        <div class="chart-container">
            <h2 class="chart-title">Detailed Metrics</h2>
            <table>
                <thead>
                    <tr>
                        <th>#</th>
                        <th>Operation</th>
                        <th>Time</th>
                        <th>Memory Used</th>
                        <th>Peak Memory</th>
                        <th>Performance</th>
                        <th>Timestamp</th>
                    </tr>
                </thead>
                <tbody>
{rows}
                </tbody>
            </table>
        </div>

        <script>
            const statsData = {stats_json};
            const metricsData = {metrics_json};
            const seriesData = {series_json};

            const scaleOptions = (text) => ({{
                responsive: true,
                maintainAspectRatio: true,
                plugins: {{ legend: {{ position: 'top' }} }},
                scales: {{ y: {{ beginAtZero: true, title: {{ display: true, text: text }} }} }}
            }});

            new Chart(document.getElementById('timeChart'), {{
                type: 'bar',
                data: {{
                    labels: statsData.map(s => s.operation),
                    datasets: [
                        {{ label: 'Average Time (ms)', data: statsData.map(s => s.avgTimeMs),
                           backgroundColor: 'rgba(102, 126, 234, 0.8)' }},
                        {{ label: 'Min Time (ms)', data: statsData.map(s => s.minTimeMs),
                           backgroundColor: 'rgba(72, 187, 120, 0.8)' }},
                        {{ label: 'Max Time (ms)', data: statsData.map(s => s.maxTimeMs),
                           backgroundColor: 'rgba(245, 101, 101, 0.8)' }}
                    ]
                }},
                options: scaleOptions('Time (ms)')
            }});

            new Chart(document.getElementById('memoryChart'), {{
                type: 'bar',
                data: {{
                    labels: statsData.map(s => s.operation),
                    datasets: [
                        {{ label: 'Average Memory (MB)', data: statsData.map(s => s.avgMemoryMB),
                           backgroundColor: 'rgba(118, 75, 162, 0.8)' }},
                        {{ label: 'Peak Memory (MB)', data: statsData.map(s => s.peakMemoryMB),
                           backgroundColor: 'rgba(237, 137, 54, 0.8)' }}
                    ]
                }},
                options: scaleOptions('Memory (MB)')
            }});

            new Chart(document.getElementById('timeDistributionChart'), {{
                type: 'line',
                data: {{
                    labels: seriesData.runs,
                    datasets: seriesData.series.map((s, idx) => ({{
                        label: s.operation,
                        data: s.timesMs,
                        borderColor: `hsl(${{idx * 60}}, 70%, 50%)`,
                        backgroundColor: `hsla(${{idx * 60}}, 70%, 50%, 0.1)`,
                        tension: 0.4,
                        fill: true
                    }}))
                }},
                options: scaleOptions('Time (ms)')
            }});
        </script>"""

ROW_TEMPLATE = """                    <tr>
                        <td>{index}</td>
                        <td>{operation}</td>
                        <td>{time_ms:.2f} ms</td>
                        <td>{memory_mb:.2f} MB</td>
                        <td>{peak_mb:.2f} MB</td>
                        <td><span class="badge badge-{bucket}">{bucket_label}</span></td>
                        <td class="timestamp">{timestamp}</td>
                    </tr>"""


def _metadata_section(metadata: dict[str, Any] | None) -> str:
    if not metadata:
        return ""
    items = "\n".join(
        METADATA_ITEM_TEMPLATE.format(
            label=html.escape(str(key)), value=html.escape(str(value))
        )
        for key, value in metadata.items()
    )
    return f'            <div class="metadata">\n{items}\n            </div>'


def _stat_cards(summaries: Sequence[Summary], grand: GrandSummary | None = None) -> str:
    if not summaries:
        return STAT_CARD_TEMPLATE.format(label="Statistics", value="n/a", unit="")
    total_ops = sum(s.count for s in summaries)
    avg_time = sum(s.avg_time_ms for s in summaries) / len(summaries)
    avg_memory = sum(s.avg_memory_mb for s in summaries) / len(summaries)
    peak_memory = max(s.peak_memory_mb for s in summaries)
    unit = ' <span class="stat-unit">{}</span>'
    cards = (
        ("Total Operations", f"{total_ops}", ""),
        ("Average Time", f"{avg_time:.2f}", unit.format("ms")),
        ("Average Memory", f"{avg_memory:.2f}", unit.format("MB")),
        ("Peak Memory", f"{peak_memory:.2f}", unit.format("MB")),
    )
    if grand is not None:
        cards += (
            ("Total Duration", f"{grand.total_duration_ms:.2f}", unit.format("ms")),
            ("Average Duration", f"{grand.average_duration_ms:.2f}", unit.format("ms")),
            ("Total Memory Delta", f"{grand.total_memory_delta / BYTES_PER_MB:.2f}", unit.format("MB")),
            ("Average Memory Delta", f"{grand.average_memory_delta / BYTES_PER_MB:.2f}", unit.format("MB")),
        )
    return "\n".join(
        STAT_CARD_TEMPLATE.format(label=label, value=value, unit=suffix)
        for label, value, suffix in cards
    )


def _rows(samples: Sequence[Sample]) -> str:
    rows = []
    for index, sample in enumerate(samples, start=1):
        bucket = classify_duration(sample.duration_ms)
        rows.append(
            ROW_TEMPLATE.format(
                index=index,
                operation=html.escape(sample.label),
                time_ms=sample.duration_ms,
                memory_mb=sample.memory_delta_mb,
                peak_mb=sample.peak_memory_mb,
                bucket=bucket,
                bucket_label=bucket.capitalize(),
                timestamp=_format_timestamp(sample.wall_clock),
            )
        )
    return "\n".join(rows)


def _series(samples: Sequence[Sample], summaries: Sequence[Summary]) -> dict[str, Any]:
    """Duration per trial index for each operation, in summary order."""
    by_label: dict[str, list[float]] = {}
    for sample in samples:
        by_label.setdefault(sample.label, []).append(sample.duration_ms)
    order = [s.operation for s in summaries if s.operation in by_label]
    order += [label for label in by_label if label not in order]
    longest = max((len(v) for v in by_label.values()), default=0)
    return {
        "runs": [f"Run {i}" for i in range(1, longest + 1)],
        "series": [
            {"operation": label, "timesMs": by_label.get(label, [])} for label in order
        ],
    }


@beartype
def render_dashboard(
    samples: Sequence[Sample],
    summaries: Sequence[Summary],
    generated_at: datetime | None = None,
    metadata: dict[str, Any] | None = None,
    grand_summary: GrandSummary | None = None,
    title: str = "Performance Tracking Dashboard",
    subtitle: str = "Proof Generation & Verification Metrics",
) -> str:
    """Render samples and summaries into one self-contained HTML document.

    Args:
        samples: Samples in insertion order (one table row each)
        summaries: Per-operation summaries (bars and stat cards)
        generated_at: Timestamp for the footer (default: now, UTC)
        metadata: Optional key/value pairs shown in the header
        grand_summary: Optional run totals, shown as extra stat cards
        title: Page title and heading
        subtitle: Line under the heading

    Returns:
        The HTML document. Zero samples renders a placeholder section.
    """
    generated_at = generated_at or datetime.now(timezone.utc)

    if samples:
        body = CHARTS_SECTION.format(
            stat_cards=_stat_cards(summaries, grand_summary),
            rows=_rows(samples),
            stats_json=_embed_json([s.to_dict() for s in summaries]),
            metrics_json=_embed_json([sample_to_metric(s) for s in samples]),
            series_json=_embed_json(_series(samples, summaries)),
        )
    else:
        body = PLACEHOLDER_SECTION

    return PAGE_TEMPLATE.format(
        title=html.escape(title),
        subtitle=html.escape(subtitle),
        chart_js_url=CHART_JS_URL,
        metadata_section=_metadata_section(metadata),
        body=body,
        generated_at=_format_timestamp(generated_at),
    )


@beartype
def save_dashboard(document: str, path: Path) -> Path:
    """Write a rendered dashboard atomically, creating parent directories."""
    write_text_atomic(document, path)
    logger.info(f"Dashboard saved to: {path}")
    return path
