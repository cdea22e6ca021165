from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
import json
from pathlib import Path
import threading
from typing import Dict, Mapping, Optional

from fleet_trader.strategies.settings import ARBITRAGE, DEFAULT_PARAMETERS
from fleet_trader.types import AgentParameters


def parameters_to_dict(params: AgentParameters) -> Dict:
    payload = asdict(params)
    if params.last_updated is not None:
        payload["last_updated"] = params.last_updated.isoformat()
    return payload


def parameters_from_dict(payload: Mapping) -> AgentParameters:
    data = dict(payload)
    if data.get("last_updated"):
        data["last_updated"] = datetime.fromisoformat(data["last_updated"])
    return AgentParameters(**data)


class ParameterStore:
    def __init__(self, defaults: Optional[Mapping[str, AgentParameters]] = None) -> None:
        self.defaults = dict(defaults or DEFAULT_PARAMETERS)
        self._params: Dict[str, AgentParameters] = {}
        self._lock = threading.Lock()

    def get(self, agent_id: str, strategy: str) -> AgentParameters:
        with self._lock:
            stored = self._params.get(agent_id)
        if stored is not None:
            return stored
        return self.defaults.get(strategy, self.defaults[ARBITRAGE])

    def put(self, agent_id: str, params: AgentParameters) -> None:
        with self._lock:
            self._params[agent_id] = params

    def save(self, path: Path) -> Path:
        with self._lock:
            payload = {agent_id: parameters_to_dict(p) for agent_id, p in self._params.items()}
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path, defaults: Optional[Mapping[str, AgentParameters]] = None) -> "ParameterStore":
        store = cls(defaults)
        if not path.exists():
            return store
        payload = json.loads(path.read_text(encoding="utf-8"))
        for agent_id, raw in payload.items():
            store.put(agent_id, parameters_from_dict(raw))
        return store
