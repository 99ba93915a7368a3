"""Tests for the Vault KV v2 save method.

A small in-memory KV v2 engine stands in for the remote Vault.
"""
import json

import httpx
import pytest

from vault_init.exceptions import LoadError, SaveError, SaveTargetExistsError
from vault_init.models.config import SaveMethodConfig, VaultKVSaveMethodConfig
from vault_init.models.vault import InitResult
from vault_init.save import vault_kv
from vault_init.save.methods import SaveMethods
from vault_init.save.vault_kv import VaultKVSaveMethod

KV_URL = "http://kv.test:8200"
KV_TOKEN = "hvs.kvWriterToken"
DATA_PATH = "/v1/secret/data/vault-init"


class KVMockTransport(httpx.BaseTransport):
    """In-memory KV v2 engine with check-and-set, recording every request."""

    def __init__(self):
        self.secrets: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.errors: dict[tuple[str, str], httpx.Response | Exception] = {}

    def put(self, path: str, data: dict, version: int = 1):
        self.secrets[path] = {"data": data, "metadata": {"version": version}}

    def writes(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        error = self.errors.get((request.method, path))
        if isinstance(error, Exception):
            raise error
        if error is not None:
            return error

        current = self.secrets.get(path)
        if request.method == "GET":
            if current is None:
                return httpx.Response(404, json={"errors": []})
            return httpx.Response(200, json={"data": current})

        body = json.loads(request.content)
        version = current["metadata"]["version"] if current else 0
        if body.get("options", {}).get("cas", version) != version:
            return httpx.Response(
                400,
                json={"errors": ["check-and-set parameter did not match the current version"]},
            )
        self.put(path, body["data"], version + 1)
        return httpx.Response(200, json={"data": {"version": version + 1}})


@pytest.fixture
def kv() -> KVMockTransport:
    return KVMockTransport()


def _method(kv: KVMockTransport, **kwargs) -> VaultKVSaveMethod:
    kwargs.setdefault("token", KV_TOKEN)
    return VaultKVSaveMethod(KV_URL, transport=kv, **kwargs)


class TestVaultKVSave:
    """Tests for VaultKVSaveMethod.save."""

    def test_creates_secret(self, kv, init_result):
        location = _method(kv).save(init_result)

        assert location == "secret/data/vault-init"
        stored = kv.secrets[DATA_PATH]["data"]
        assert stored["root_token"] == init_result.root_token
        assert InitResult.model_validate_json(stored["vault-init.json"]) == init_result
        assert kv.writes()[0]["options"] == {"cas": 0}

    def test_sends_token(self, kv, init_result):
        _method(kv).save(init_result)

        assert {r.headers["authorization"] for r in kv.requests} == {f"Bearer {KV_TOKEN}"}

    def test_custom_mount_and_keys(self, kv, init_result):
        location = _method(
            kv,
            mount_path="/kv/",
            secret_path="clusters/prod",
            init_response_key="init",
            root_token_key="token",
        ).save(init_result)

        assert location == "kv/data/clusters/prod"
        assert set(kv.secrets["/v1/kv/data/clusters/prod"]["data"]) == {"init", "token"}

    def test_existing_without_overwrite_fails_without_write(self, kv, init_result):
        kv.put(DATA_PATH, {"vault-init.json": "{}"})

        with pytest.raises(SaveTargetExistsError):
            _method(kv).save(init_result)

        assert kv.writes() == []
        assert kv.secrets[DATA_PATH]["data"] == {"vault-init.json": "{}"}

    def test_existing_with_overwrite_writes_against_read_version(self, kv, init_result):
        kv.put(DATA_PATH, {"vault-init.json": "{}"}, version=4)

        _method(kv, overwrite=True).save(init_result)

        assert kv.writes()[0]["options"] == {"cas": 4}
        assert kv.secrets[DATA_PATH]["metadata"]["version"] == 5

    def test_write_rejected_is_save_error(self, kv, init_result):
        kv.errors[("POST", DATA_PATH)] = httpx.Response(
            403, json={"errors": ["permission denied"]}
        )

        with pytest.raises(SaveError, match="permission denied"):
            _method(kv).save(init_result)

    def test_unreachable_is_save_error(self, kv, init_result):
        kv.errors[("GET", DATA_PATH)] = httpx.ConnectError("Connection refused")

        with pytest.raises(SaveError):
            _method(kv).save(init_result)

    def test_no_address_is_save_error(self, kv, init_result):
        with pytest.raises(SaveError, match="VAULT_KV_ADDR"):
            VaultKVSaveMethod("", transport=kv).save(init_result)

        assert kv.requests == []


class TestVaultKVLoad:
    """Tests for VaultKVSaveMethod.load."""

    def test_load(self, kv, init_result):
        method = _method(kv)
        method.save(init_result)

        assert method.load() == init_result

    def test_missing_secret(self, kv):
        with pytest.raises(LoadError) as exc_info:
            _method(kv).load()

        assert "does not exist" in str(exc_info.value)

    def test_missing_key(self, kv):
        kv.put(DATA_PATH, {"root_token": "hvs.x"})

        with pytest.raises(LoadError) as exc_info:
            _method(kv).load()

        assert "vault-init.json" in str(exc_info.value)

    def test_invalid_init_json(self, kv):
        kv.put(DATA_PATH, {"vault-init.json": "not json"})

        with pytest.raises(LoadError, match="invalid init data"):
            _method(kv).load()

    def test_sealed_remote_is_load_error(self, kv):
        kv.errors[("GET", DATA_PATH)] = httpx.Response(503, json={"errors": ["Vault is sealed"]})

        with pytest.raises(LoadError, match="Vault is sealed"):
            _method(kv).load()

    def test_no_address_is_load_error(self):
        with pytest.raises(LoadError):
            VaultKVSaveMethod("").load()


class TestFromConfig:
    def test_defaults_come_from_environment(self, monkeypatch):
        monkeypatch.setattr(vault_kv, "VAULT_KV_ADDR", "http://kv.env:8200/")
        monkeypatch.setattr(vault_kv, "VAULT_KV_TOKEN", "hvs.fromEnv")

        method = VaultKVSaveMethod.from_config(VaultKVSaveMethodConfig())

        assert method.address == "http://kv.env:8200"
        assert method.token == "hvs.fromEnv"
        assert method.location == "secret/data/vault-init"
        assert method.overwrite is False

    def test_configured_address_wins(self, monkeypatch):
        monkeypatch.setattr(vault_kv, "VAULT_KV_ADDR", "http://kv.env:8200")

        method = VaultKVSaveMethod.from_config(
            VaultKVSaveMethodConfig(address="http://kv.config:8200", overwrite=True)
        )

        assert method.address == "http://kv.config:8200"
        assert method.overwrite is True

    def test_ordered_after_other_methods(self):
        methods = SaveMethods.from_config(
            SaveMethodConfig.model_validate(
                {"vault_kv": {"address": KV_URL}, "file": {}, "kube_secret": {"namespace": "v"}}
            )
        )

        assert methods.names == ["file", "kube_secret", "vault_kv"]
