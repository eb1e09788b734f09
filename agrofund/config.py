"""Runtime settings for AgroFund.

Settings come from environment variables with sensible defaults and
can be overridden by command-line flags in ``agrofund.main``::

    AGROFUND_DATA_DIR            directory holding the store (~/.agrofund/data)
    AGROFUND_DB_PATH             explicit store file, wins over DATA_DIR
    AGROFUND_EXPORT_DIR          where portfolio exports are written (<store dir>/exports)
    AGROFUND_ENFORCE_FUNDING_CAP reject funding above the remaining goal (1)
    AGROFUND_LOG_VERBOSE         DEBUG logging when truthy (0)

"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

_DEFAULT_DATA_DIR = Path.home() / ".agrofund" / "data"
_DB_FILENAME = "agrofund.duckdb"
_EXPORT_DIRNAME = "exports"
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    msg = f"{name} must be a boolean flag, got '{raw}'"
    raise ValueError(msg)


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings.

    Attributes:
        db_path: Store file location.
        enforce_funding_cap: Reject funding that exceeds a project's
            remaining goal.
        verbose: Enable DEBUG logging.
        export_dir: The only directory portfolio exports are written to.
            None disables writing exports to disk.

    """

    db_path: Path
    enforce_funding_cap: bool = True
    verbose: bool = False
    export_dir: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Raises:
            ValueError: If a boolean variable holds an unrecognised value.

        """
        env = os.environ if environ is None else environ

        db_path_raw = env.get("AGROFUND_DB_PATH", "").strip()
        if db_path_raw:
            db_path = Path(db_path_raw).expanduser()
        else:
            data_dir = env.get("AGROFUND_DATA_DIR", "").strip()
            base = Path(data_dir).expanduser() if data_dir else _DEFAULT_DATA_DIR
            db_path = base / _DB_FILENAME

        export_dir_raw = env.get("AGROFUND_EXPORT_DIR", "").strip()
        if export_dir_raw:
            export_dir = Path(export_dir_raw).expanduser()
        else:
            export_dir = db_path.parent / _EXPORT_DIRNAME

        return cls(
            db_path=db_path,
            export_dir=export_dir,
            enforce_funding_cap=_parse_bool(
                "AGROFUND_ENFORCE_FUNDING_CAP",
                env.get("AGROFUND_ENFORCE_FUNDING_CAP", "1"),
            ),
            verbose=_parse_bool(
                "AGROFUND_LOG_VERBOSE", env.get("AGROFUND_LOG_VERBOSE", "0")
            ),
        )
