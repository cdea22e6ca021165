from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import os
from typing import List


def _parse_float(raw: str | None, default: float) -> float:
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _parse_int(raw: str | None, default: int) -> int:
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _parse_list(raw: str | None, default: List[str]) -> List[str]:
    if raw is None or raw.strip() == "":
        return default
    return [item.strip().upper() for item in raw.split(",") if item.strip()]


def _parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


DEFAULT_SYMBOLS = ["BTCUSDT", "ETHUSDT", "SOLUSDT"]


def load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


@dataclass
class DataConfig:
    data_dir: Path = field(default_factory=lambda: _project_root() / "data")
    symbols: List[str] = field(default_factory=lambda: DEFAULT_SYMBOLS.copy())

    @property
    def prices_dir(self) -> Path:
        return self.data_dir / "prices"

    @property
    def trades_dir(self) -> Path:
        return self.data_dir / "trades"

    @property
    def outputs_dir(self) -> Path:
        return self.data_dir / "outputs"


@dataclass
class AgentLoopConfig:
    scan_interval_seconds: float = 15.0
    history_capacity: int = 100
    min_history_ticks: int = 5
    min_order_notional: float = 5.0


@dataclass
class LearningConfig:
    min_closed_trades: int = 10


@dataclass
class BacktestConfig:
    starting_cash: float = 10_000.0
    commission_bps: float = 4.0
    slippage_bps: float = 5.0


@dataclass
class LoggingConfig:
    level: str = "INFO"
    json_output: bool = False


@dataclass
class AppConfig:
    data: DataConfig
    agent: AgentLoopConfig
    learning: LearningConfig
    backtest: BacktestConfig
    logging: LoggingConfig

    def ensure_dirs(self) -> None:
        self.data.data_dir.mkdir(parents=True, exist_ok=True)
        self.data.prices_dir.mkdir(parents=True, exist_ok=True)
        self.data.trades_dir.mkdir(parents=True, exist_ok=True)
        self.data.outputs_dir.mkdir(parents=True, exist_ok=True)


def load_config(env_path: str | Path | None = None) -> AppConfig:
    if env_path is None:
        env_path = _project_root() / ".env"
    load_env_file(Path(env_path))

    data = DataConfig(
        data_dir=Path(os.getenv("DATA_DIR", str(_project_root() / "data"))),
        symbols=_parse_list(os.getenv("SYMBOLS"), DEFAULT_SYMBOLS.copy()),
    )

    agent = AgentLoopConfig(
        scan_interval_seconds=_parse_float(os.getenv("SCAN_INTERVAL_SECONDS"), 15.0),
        history_capacity=_parse_int(os.getenv("HISTORY_CAPACITY"), 100),
        min_history_ticks=_parse_int(os.getenv("MIN_HISTORY_TICKS"), 5),
        min_order_notional=_parse_float(os.getenv("MIN_ORDER_NOTIONAL"), 5.0),
    )

    learning = LearningConfig(
        min_closed_trades=_parse_int(os.getenv("LEARNING_MIN_CLOSED_TRADES"), 10),
    )

    backtest = BacktestConfig(
        starting_cash=_parse_float(os.getenv("STARTING_CASH"), 10_000.0),
        commission_bps=_parse_float(os.getenv("COMMISSION_BPS"), 4.0),
        slippage_bps=_parse_float(os.getenv("SLIPPAGE_BPS"), 5.0),
    )

    logging_config = LoggingConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        json_output=_parse_bool(os.getenv("LOG_JSON"), False),
    )

    return AppConfig(
        data=data,
        agent=agent,
        learning=learning,
        backtest=backtest,
        logging=logging_config,
    )
