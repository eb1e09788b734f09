"""JSON export for an investor's portfolio.

Produces a JSON document with export metadata, headline metrics, the
annotated investment history, the portfolio breakdown and the
performance series.

"""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import numpy as np

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class _PortfolioEncoder(json.JSONEncoder):
    """JSON encoder that handles NumPy types and datetimes."""

    def default(self, o: Any) -> Any:
        """Convert non-serializable types to JSON-safe values."""
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, np.floating):
            return float(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def default_export_filename(investor: dict[str, Any], when: datetime | None = None) -> str:
    """Build ``portfolio-<email-local-part>-<YYYY-MM-DD>.json``.

    Characters outside ``[A-Za-z0-9._-]`` in the handle become ``_`` so
    the name never leaves its directory.
    """
    when = when or datetime.now(tz=UTC)
    handle = str(investor.get("email", investor.get("id", "investor"))).split("@", 1)[0]
    handle = _UNSAFE_FILENAME_CHARS.sub("_", handle) or "investor"
    return f"portfolio-{handle}-{when.strftime('%Y-%m-%d')}.json"


def export_portfolio_json(
    investor: dict[str, Any],
    metrics: dict[str, Any] | None = None,
    history: list[dict[str, Any]] | None = None,
    breakdown: dict[str, Any] | None = None,
    performance: dict[str, Any] | None = None,
    output_dir: Path | str | None = None,
) -> str:
    """Export portfolio data to JSON format.

    Args:
        investor: The investor's user record.
        metrics: Portfolio metrics dict.
        history: Investment history entries.
        breakdown: Portfolio breakdown dict.
        performance: Performance metrics dict.
        output_dir: Directory to write into, using
            ``default_export_filename``. If None, returns JSON string.

    Returns:
        JSON string, or the written file path if output_dir given.

    """
    exported_at = datetime.now(tz=UTC)

    export_data: dict[str, Any] = {
        "metadata": {
            "exportedAt": exported_at.isoformat(),
            "formatVersion": "1.0",
            "source": "AgroFund",
        },
        "user": investor,
    }

    if metrics is not None:
        export_data["metrics"] = metrics

    if history is not None:
        export_data["history"] = history
        export_data["metadata"]["investmentCount"] = len(history)

    if breakdown is not None:
        export_data["breakdown"] = breakdown

    if performance is not None:
        export_data["performance"] = performance

    content = json.dumps(export_data, cls=_PortfolioEncoder, indent=2)

    if output_dir is None:
        return content
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / default_export_filename(investor, exported_at)
    path.write_text(content, encoding="utf-8")
    return str(path)
