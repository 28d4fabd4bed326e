"""Application state and the IPC bridge between the web front end and the VPN service."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Protocol

log = logging.getLogger(__name__)

CONFIG_FILE = "config.json"


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _require(data: Mapping[str, Any], name: str, kind: type) -> Any:
    if name not in data:
        raise ValueError(f"missing field `{name}`")
    value = data[name]
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"field `{name}` must be an integer")
    elif not isinstance(value, kind):
        raise ValueError(f"field `{name}` must be of type {kind.__name__}")
    return value


def _load_object(text: str) -> Mapping[str, Any]:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data


@dataclass
class BnetConfig:
    """Settings for the tunnel, as edited in the front end."""

    app: str = ""
    domain: str = ""
    port: int = 0
    password: str = ""
    gateway: str = ""
    trust_dns: str = ""
    distrust_dns: str = ""
    mtu: int = 0

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BnetConfig":
        """Build a config from a mapping; every field is required."""
        if not isinstance(data, Mapping):
            raise ValueError("config must be an object")
        values = {
            f.name: _require(data, f.name, int if f.type in ("int", int) else str)
            for f in dataclasses.fields(cls)
        }
        if not 0 <= values["port"] <= 0xFFFF:
            raise ValueError(f"port out of range: {values['port']}")
        if values["mtu"] < 0:
            raise ValueError(f"mtu must not be negative: {values['mtu']}")
        return cls(**values)


@dataclass(frozen=True)
class IpcRequest:
    """A call from the front end: a method name and its JSON payload text."""

    method: str
    payload: str

    @classmethod
    def from_json(cls, text: str) -> "IpcRequest":
        data = _load_object(text)
        return cls(_require(data, "method", str), _require(data, "payload", str))


@dataclass(frozen=True)
class InitData:
    """What the platform reports at start-up: a cache directory and app package names."""

    path: str
    pnames: List[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, text: str) -> "InitData":
        data = _load_object(text)
        path = _require(data, "path", str)
        pnames = _require(data, "pnames", list)
        if not all(isinstance(name, str) for name in pnames):
            raise ValueError("field `pnames` must hold strings")
        return cls(path, list(pnames))


class Platform(Protocol):
    """Services the host operating system provides to the app."""

    def get_init_data(self) -> str: ...
    def start_vpn(self, app: str, dns: str, gateway: str) -> None: ...
    def stop_vpn(self) -> None: ...


class MobileTrojanApp:
    """Holds the app state and answers IPC calls from the web view.

    ``call_js`` delivers a script to the web view to be evaluated.
    """

    def __init__(
        self,
        platform: Platform,
        call_js: Callable[[str], object],
        cache_dir: str = "",
        config: Optional[BnetConfig] = None,
    ) -> None:
        self.platform = platform
        self._call_js = call_js
        self.cache_dir = cache_dir
        self.config = config if config is not None else BnetConfig()
        self.running = threading.Event()

    @property
    def config_path(self) -> str:
        return os.path.join(self.cache_dir, CONFIG_FILE)

    def load_config(self) -> str:
        """Return the saved config text, or "" when none has been saved."""
        try:
            with open(self.config_path, encoding="utf-8") as file:
                return file.read()
        except FileNotFoundError:
            return ""

    def save_config(self) -> None:
        with open(self.config_path, "w", encoding="utf-8") as file:
            file.write(_dumps(self.config.to_dict()))

    def handle_ipc(self, message: str) -> None:
        """Carry out one IPC request; raise ValueError or OSError on failure."""
        request = IpcRequest.from_json(message)
        if request.method == "startInit":
            log.info("start init now")
            init = InitData.from_json(self.platform.get_init_data())
            self.set_app_list(_dumps(init.pnames))
            self.cache_dir = init.path
            self.set_config(self.load_config())
        elif request.method == "startBnet":
            payload = _load_object(request.payload)
            if "config" not in payload:
                raise ValueError("missing field `config`")
            config = BnetConfig.from_dict(payload["config"])
            self.config = config
            self.save_config()
            self.platform.start_vpn(config.app, config.gateway, config.gateway)
        elif request.method == "stopBnet":
            self.platform.stop_vpn()
        else:
            log.error("ipc method:%s not supported", request.method)

    def set_config(self, data: str) -> None:
        self._call_js(f"window.setConfig('{data}');")

    def set_app_list(self, data: str) -> None:
        self._call_js(f"window.setAppList('{data}');")

    def set_error(self, message: str) -> None:
        self._call_js(f"window.setError('{message}');")

    def on_stop(self) -> None:
        """Tell the running tunnel to stop."""
        self.running.clear()

    def on_network_changed(self, enable: bool) -> None:
        log.info("network status changed:%s", enable)