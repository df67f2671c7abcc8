import json

import pytest

from minerkit.api_session import ApiSession


class FakeBackend:
    def __init__(self):
        self.calls = []
        self.nonce = 7
        self.width = 32
        self.miners = 2
        self.fail_add = False
        self.fail_remove = None

    def miner_stat1(self):
        return ["stat1"]

    def miner_stat_detail(self):
        return {"detail": True}

    def shuffle(self):
        self.calls.append("shuffle")

    def restart_async(self):
        self.calls.append("restart")

    def reboot(self, args):
        self.calls.append(("reboot", args))
        return "rebooted"

    def get_connections_json(self):
        return []

    def add_connection(self, uri):
        if self.fail_add:
            raise ValueError("bad")
        self.calls.append(("add", uri))

    def set_active_connection(self, target):
        self.calls.append(("active", target))

    def remove_connection(self, index):
        if self.fail_remove:
            raise ValueError(self.fail_remove)
        self.calls.append(("remove", index))

    def get_nonce_scrambler_json(self):
        return {"noncescrambler": self.nonce}

    def get_nonce_scrambler(self):
        return self.nonce

    def get_segment_width(self):
        return self.width

    def set_nonce_scrambler(self, nonce):
        self.nonce = nonce

    def set_nonce_segment_width(self, width):
        self.width = width

    def pause_miner(self, index, pause):
        if index >= self.miners:
            return False
        self.calls.append(("pause", index, pause))
        return True

    def set_verbosity(self, verbosity):
        self.calls.append(("verbosity", verbosity))


def req(method, params=None, rid=1):
    r = {"id": rid, "jsonrpc": "2.0", "method": method}
    if params is not None:
        r["params"] = params
    return r


@pytest.fixture
def backend():
    return FakeBackend()


def test_ping(backend):
    resp = ApiSession(backend).process_request(req("miner_ping", rid="abc"))
    assert resp == {"jsonrpc": "2.0", "id": "abc", "result": "pong"}


def test_missing_id(backend):
    resp = ApiSession(backend).process_request({"jsonrpc": "2.0", "method": "miner_ping"})
    assert resp["id"] is None
    assert resp["error"] == {"code": -32600, "message": "Invalid Request (missing or empty id)"}


def test_invalid_id_type(backend):
    resp = ApiSession(backend).process_request(req("miner_ping", rid=[1]))
    assert resp["error"]["message"] == "Invalid Request (id has invalid type)"


def test_wrong_jsonrpc_version(backend):
    r = req("miner_ping")
    r["jsonrpc"] = "1.0"
    resp = ApiSession(backend).process_request(r)
    assert resp["error"] == {"code": -32600, "message": "Invalid Request"}
    assert resp["id"] == 1


def test_unknown_method(backend):
    resp = ApiSession(backend).process_request(req("miner_nope"))
    assert resp["error"] == {"code": -32601, "message": "Method not found"}


def test_readonly_blocks_writes(backend):
    resp = ApiSession(backend, readonly=True).process_request(req("miner_shuffle"))
    assert resp["error"] == {"code": -32601, "message": "Method not available"}
    assert backend.calls == []


def test_shuffle_and_reboot(backend):
    session = ApiSession(backend)
    assert session.process_request(req("miner_shuffle"))["result"] is True
    assert session.process_request(req("miner_reboot"))["result"] == "rebooted"
    assert backend.calls == ["shuffle", ("reboot", ["api_miner_reboot"])]


def test_stat_methods(backend):
    session = ApiSession(backend)
    assert session.process_request(req("miner_getstat1"))["result"] == ["stat1"]
    assert session.process_request(req("miner_getstatdetail"))["result"] == {"detail": True}


def test_authentication_flow(backend):
    password = "password"
    session = ApiSession(backend, password=password)
    resp = session.process_request(req("miner_ping"))
    assert resp["error"] == {"code": -403, "message": "Authorization needed"}

    resp = session.process_request(req("api_authorize", {"psw": "secret"}))
    assert resp["error"] == {"code": -401, "message": "Invalid password"}
    assert session.authenticated is False

    resp = session.process_request(req("api_authorize", {"psw": "password"}))
    assert "error" not in resp
    assert session.authenticated is True
    assert session.process_request(req("miner_ping"))["result"] == "pong"


def test_authorize_missing_params(backend):
    password = "password"
    session = ApiSession(backend, password=password)
    resp = session.process_request(req("api_authorize"))
    assert resp["error"] == {"code": -32602, "message": "Missing 'params'"}


def test_set_scrambler_hex_and_clamp_high(backend):
    session = ApiSession(backend)
    resp = session.process_request(
        req("miner_setscramblerinfo", {"noncescrambler": "0x10", "segmentwidth": 60})
    )
    assert resp["result"] is True
    assert backend.nonce == 16
    assert backend.width == 40


def test_set_scrambler_clamp_low_keeps_nonce(backend):
    session = ApiSession(backend)
    session.process_request(req("miner_setscramblerinfo", {"segmentwidth": 5}))
    assert backend.width == 10
    assert backend.nonce == 7


def test_set_scrambler_missing_parameters(backend):
    resp = ApiSession(backend).process_request(req("miner_setscramblerinfo", {"other": 1}))
    assert resp["error"] == {"code": -32602, "message": "Missing parameters"}


def test_pause_gpu_out_of_bounds(backend):
    session = ApiSession(backend)
    resp = session.process_request(req("miner_pausegpu", {"index": 5, "pause": True}))
    assert resp["error"] == {"code": -422, "message": "Index out of bounds"}
    resp = session.process_request(req("miner_pausegpu", {"index": 1, "pause": False}))
    assert resp["result"] is True
    assert backend.calls == [("pause", 1, False)]


def test_set_verbosity_bounds(backend):
    session = ApiSession(backend)
    resp = session.process_request(req("miner_setverbosity", {"verbosity": 512}))
    assert resp["error"] == {"code": -422, "message": "Verbosity out of bounds (0-511)"}
    assert session.process_request(req("miner_setverbosity", {"verbosity": 3}))["result"] is True
    assert backend.calls == [("verbosity", 3)]


def test_add_connection_bad_uri(backend):
    backend.fail_add = True
    resp = ApiSession(backend).process_request(req("miner_addconnection", {"uri": "nonsense"}))
    assert resp["error"] == {"code": -422, "message": "Bad URI : nonsense"}


def test_set_active_connection(backend):
    session = ApiSession(backend)
    resp = session.process_request(req("miner_setactiveconnection", {"index": "one"}))
    assert resp["error"] == {"code": -422, "message": "Invalid index"}
    assert session.process_request(req("miner_setactiveconnection", {"index": 1}))["result"] is True
    session.process_request(req("miner_setactiveconnection", {"URI": "stratum://example.com:1"}))
    assert backend.calls == [("active", 1), ("active", "stratum://example.com:1")]


def test_remove_connection_error_message(backend):
    backend.fail_remove = "cannot remove"
    resp = ApiSession(backend).process_request(req("miner_removeconnection", {"index": 0}))
    assert resp["error"] == {"code": -422, "message": "cannot remove"}


def test_handle_line_wire_format(backend):
    line = ApiSession(backend).handle_line(json.dumps(req("miner_ping")) + "\r\n")
    assert line == '{"id":1,"jsonrpc":"2.0","result":"pong"}\n'


def test_handle_line_blank(backend):
    assert ApiSession(backend).handle_line("   ") is None


def test_handle_line_parse_error(backend):
    out = json.loads(ApiSession(backend).handle_line("{not json"))
    assert out["id"] is None
    assert out["error"]["errorcode"] == "-32700"
    assert out["error"]["message"].startswith("Json parse error : ")


def test_handle_line_non_object(backend):
    out = json.loads(ApiSession(backend).handle_line("[1, 2]"))
    assert out["error"]["errorcode"] == "500"
    assert out["jsonrpc"] == "2.0"


def test_process_request_rejects_non_object(backend):
    with pytest.raises(TypeError):
        ApiSession(backend).process_request([1])