"""Backtest report output: JSON summary, bet CSV, Excel workbook, text summary."""

import json
import logging
from pathlib import Path
from typing import Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils.dataframe import dataframe_to_rows

from config.settings import get_settings
from src.backtest.harness import BacktestResult
from src.backtest.metrics import BetMetrics, bets_to_frame

logger = logging.getLogger(__name__)


def _fmt_pct(value: float) -> str:
    return f"{100 * value:.1f}%"


def _fmt_metrics(label: str, m: BetMetrics) -> str:
    clv = f"{m.avg_clv:+.2f}" if m.avg_clv is not None else "n/a"
    brier = f"{m.brier:.4f}" if m.brier is not None else "n/a"
    return (
        f"{label:<10} {m.wins}-{m.losses}-{m.pushes} "
        f"(n={m.total})  win {_fmt_pct(m.win_rate)}  ROI {100 * m.roi:+.1f}%  "
        f"units {m.units:+.2f}  CLV {clv}  Brier {brier}"
    )


def format_summary(result: BacktestResult) -> str:
    """Plain-text summary of a backtest result."""
    lines = [
        "=" * 72,
        "BACKTEST RESULT",
        "=" * 72,
        f"Seasons:        {', '.join(str(s) for s in result.seasons)}",
        f"Train:          < {result.train_split}",
        f"Holdout:        >= {result.holdout_split}",
        f"Selected:       {result.selected_params}",
        f"Search:         {result.n_candidates} candidates, "
        f"{result.n_insufficient} below sample floor",
        "",
        _fmt_metrics("Train", result.train_metrics),
        _fmt_metrics("Holdout", result.holdout_metrics),
        f"Decay (train ROI - holdout ROI): {100 * result.performance_decay:+.1f}%",
        "",
        "95% intervals:",
        f"  win rate (bootstrap) [{_fmt_pct(result.win_rate_ci.lower)}, {_fmt_pct(result.win_rate_ci.upper)}]",
        f"  win rate (Wilson)    [{_fmt_pct(result.win_rate_wilson[0])}, {_fmt_pct(result.win_rate_wilson[1])}]",
        f"  ROI (bootstrap)      [{100 * result.roi_ci.lower:+.1f}%, {100 * result.roi_ci.upper:+.1f}%]",
    ]
    if result.clv_ci is not None:
        lines.append(f"  CLV (bootstrap)      [{result.clv_ci.lower:+.2f}, {result.clv_ci.upper:+.2f}]")

    lines += ["", "Edge buckets:"]
    for b in result.edge_buckets:
        lines.append(
            f"  {b.label:>6}  n={b.count:<5} win {_fmt_pct(b.win_rate):>6}  ROI {100 * b.roi:+6.1f}%"
        )
    if not result.roi_monotonic:
        lines.append("  WARNING: ROI is not monotonic in edge size")

    if result.seasons_breakdown:
        lines += ["", "By season:"]
        for season, m in result.seasons_breakdown.items():
            lines.append("  " + _fmt_metrics(str(season), m))

    if result.exclusions:
        lines += ["", "Exclusions:"]
        for reason, count in result.exclusions.items():
            lines.append(f"  {reason:<28} {count}")

    lines.append("=" * 72)
    return "\n".join(lines)


class BacktestReporter:
    """Write backtest results to the outputs directory."""

    def __init__(self, output_dir: Optional[Path] = None):
        settings = get_settings()
        self.output_dir = Path(output_dir) if output_dir else settings.outputs_dir

    def _path(self, filename: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir / filename

    def save_json(self, result: BacktestResult, filename: str = "backtest_result.json") -> Path:
        path = self._path(filename)
        with open(path, "w") as f:
            json.dump(result.to_dict(), f, indent=2)
        logger.info(f"Saved backtest summary to {path}")
        return path

    def save_bets_csv(self, result: BacktestResult, filename: str = "backtest_bets.csv") -> Path:
        path = self._path(filename)
        bets_to_frame(list(result.bets)).to_csv(path, index=False)
        logger.info(f"Saved {len(result.bets)} holdout bets to {path}")
        return path

    # ------------------------------------------------------------------
    # Excel
    # ------------------------------------------------------------------

    def _style_header(self, ws, num_cols: int) -> None:
        header_fill = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
        header_font = Font(color="FFFFFF", bold=True)
        for col in range(1, num_cols + 1):
            cell = ws.cell(row=1, column=col)
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = Alignment(horizontal="center")

    def _auto_column_width(self, ws) -> None:
        for column in ws.columns:
            max_length = max((len(str(c.value)) for c in column if c.value is not None), default=0)
            ws.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)

    def _add_borders(self, ws) -> None:
        thin = Side(style="thin")
        border = Border(left=thin, right=thin, top=thin, bottom=thin)
        for row in ws.iter_rows():
            for cell in row:
                if cell.value is not None:
                    cell.border = border

    def _write_sheet(self, wb: Workbook, title: str, df: pd.DataFrame) -> None:
        ws = wb.create_sheet(title)
        if df.empty:
            ws.cell(row=1, column=1, value=f"No {title.lower()}")
            return
        for r_idx, row in enumerate(dataframe_to_rows(df, index=False, header=True)):
            for c_idx, value in enumerate(row, start=1):
                cell = ws.cell(row=r_idx + 1, column=c_idx)
                if isinstance(value, float):
                    cell.value = round(value, 4)
                else:
                    cell.value = value
        self._style_header(ws, len(df.columns))
        self._auto_column_width(ws)
        self._add_borders(ws)

    def export_workbook(
        self,
        result: BacktestResult,
        ratings_df: Optional[pd.DataFrame] = None,
        filename: str = "backtest.xlsx",
    ) -> Path:
        """Excel workbook with Summary, Bets, Edge Buckets, Seasons, Search and Ratings sheets."""
        wb = Workbook()
        wb.remove(wb.active)

        summary = pd.DataFrame(
            [{"split": "train", **result.train_metrics.to_dict()},
             {"split": "holdout", **result.holdout_metrics.to_dict()}]
        )
        self._write_sheet(wb, "Summary", summary)
        self._write_sheet(wb, "Bets", bets_to_frame(list(result.bets)))
        self._write_sheet(wb, "Edge Buckets", pd.DataFrame([b.to_dict() for b in result.edge_buckets]))
        self._write_sheet(
            wb,
            "Seasons",
            pd.DataFrame([{"season": s, **m.to_dict()} for s, m in result.seasons_breakdown.items()]),
        )
        self._write_sheet(
            wb,
            "Search",
            pd.DataFrame([
                {"index": c.index, **c.params, **c.metrics.to_dict()} for c in result.leaderboard
            ]),
        )
        if ratings_df is not None:
            self._write_sheet(wb, "Ratings", ratings_df)

        path = self._path(filename)
        wb.save(path)
        logger.info(f"Saved backtest workbook to {path}")
        return path
