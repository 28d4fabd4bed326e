import json
import logging

import pytest

from mobiletrojan.app import BnetConfig, InitData, IpcRequest, MobileTrojanApp


class FakePlatform:
    def __init__(self, init_data=""):
        self.init_data = init_data
        self.started = []
        self.stopped = 0

    def get_init_data(self):
        return self.init_data

    def start_vpn(self, app, dns, gateway):
        self.started.append((app, dns, gateway))

    def stop_vpn(self):
        self.stopped += 1


def make_app(init_data="", cache_dir=""):
    scripts = []
    platform = FakePlatform(init_data)
    return MobileTrojanApp(platform, scripts.append, cache_dir=cache_dir), platform, scripts


def sample_config_dict():
    return {
        "app": "com.example.app",
        "domain": "example.com",
        "port": 443,
        "password": "password",
        "gateway": "10.0.0.1",
        "trust_dns": "8.8.8.8",
        "distrust_dns": "114.114.114.114",
        "mtu": 1500,
    }


def test_config_round_trip():
    data = sample_config_dict()
    config = BnetConfig.from_dict(data)
    assert config.domain == "example.com"
    assert config.to_dict() == data


def test_config_missing_field_raises():
    data = sample_config_dict()
    del data["mtu"]
    with pytest.raises(ValueError):
        BnetConfig.from_dict(data)


def test_config_port_out_of_range_raises():
    data = sample_config_dict()
    data["port"] = 70000
    with pytest.raises(ValueError):
        BnetConfig.from_dict(data)


def test_config_wrong_type_raises():
    data = sample_config_dict()
    data["port"] = "443"
    with pytest.raises(ValueError):
        BnetConfig.from_dict(data)


def test_ipc_request_from_json():
    request = IpcRequest.from_json(json.dumps({"method": "stopBnet", "payload": ""}))
    assert request == IpcRequest("stopBnet", "")


def test_ipc_request_missing_payload_raises():
    with pytest.raises(ValueError):
        IpcRequest.from_json('{"method": "stopBnet"}')


def test_init_data_from_json():
    init = InitData.from_json(json.dumps({"path": "/tmp/x", "pnames": ["a", "b"]}))
    assert init.path == "/tmp/x"
    assert init.pnames == ["a", "b"]


def test_set_config_script():
    app, _, scripts = make_app()
    app.set_config("abc")
    app.set_error("serviceStarted")
    assert scripts == ["window.setConfig('abc');", "window.setError('serviceStarted');"]


def test_start_init_without_saved_config(tmp_path):
    init = json.dumps({"path": str(tmp_path), "pnames": ["a", "b"]})
    app, _, scripts = make_app(init)
    app.handle_ipc(json.dumps({"method": "startInit", "payload": ""}))
    assert app.cache_dir == str(tmp_path)
    assert scripts == ["window.setAppList('[\"a\",\"b\"]');", "window.setConfig('');"]


def test_start_bnet_saves_and_starts(tmp_path):
    app, platform, _ = make_app(cache_dir=str(tmp_path))
    data = sample_config_dict()
    payload = json.dumps({"config": data})
    app.handle_ipc(json.dumps({"method": "startBnet", "payload": payload}))
    assert platform.started == [("com.example.app", "10.0.0.1", "10.0.0.1")]
    assert json.loads(app.load_config()) == data
    assert app.config == BnetConfig.from_dict(data)


def test_start_init_loads_saved_config(tmp_path):
    config = BnetConfig.from_dict(sample_config_dict())
    saver, _, _ = make_app(cache_dir=str(tmp_path))
    saver.config = config
    saver.save_config()
    init = json.dumps({"path": str(tmp_path), "pnames": []})
    app, _, scripts = make_app(init)
    app.handle_ipc(json.dumps({"method": "startInit", "payload": ""}))
    assert scripts[-1] == f"window.setConfig('{saver.load_config()}');"
    loaded = json.loads(app.load_config())
    assert BnetConfig.from_dict(loaded) == config


def test_stop_bnet_calls_platform():
    app, platform, _ = make_app()
    app.handle_ipc(json.dumps({"method": "stopBnet", "payload": ""}))
    assert platform.stopped == 1


def test_unknown_method_does_nothing():
    app, platform, scripts = make_app()
    app.handle_ipc(json.dumps({"method": "dance", "payload": ""}))
    assert scripts == []
    assert platform.started == [] and platform.stopped == 0


def test_invalid_json_raises():
    app, _, _ = make_app()
    with pytest.raises(ValueError):
        app.handle_ipc("not json")


def test_on_stop_clears_running():
    app, _, _ = make_app()
    app.running.set()
    app.on_stop()
    assert not app.running.is_set()


def test_on_network_changed_logs(caplog):
    app, _, _ = make_app()
    with caplog.at_level(logging.INFO, logger="mobiletrojan.app"):
        app.on_network_changed(True)
    assert "network status changed:True" in caplog.text