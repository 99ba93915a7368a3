"""Kubernetes Secret save method.

Persists the init result as a JSON string under one key of a Kubernetes
Secret. The secret is addressed by name and namespace; the namespace
defaults to the caller's own (service-account namespace in-cluster, the
active kubeconfig context otherwise).

The kubernetes client is synchronous; the bootstrapper runs save and load
in a worker thread.
"""
import base64
import binascii
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import urllib3
import yaml
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from pydantic import ValidationError

from vault_init.exceptions import LoadError, SaveError, SaveTargetExistsError
from vault_init.models.config import (
    DEFAULT_SECRET_KEY,
    DEFAULT_SECRET_NAME,
    KubeSecretSaveMethodConfig,
)
from vault_init.models.vault import InitResult
from vault_init.save.base import SaveMethod

log = logging.getLogger(__name__)

SERVICE_ACCOUNT_NAMESPACE = Path("/var/run/secrets/kubernetes.io/serviceaccount/namespace")


def default_namespace(kubeconfig: Optional[str] = None) -> str:
    """Namespace the caller runs in.

    Priority:
    1. Service-account namespace file (in-cluster)
    2. Namespace of the active kubeconfig context
    3. "default"
    """
    try:
        namespace = SERVICE_ACCOUNT_NAMESPACE.read_text().strip()
        if namespace:
            return namespace
    except OSError:
        pass

    try:
        _, active = k8s_config.list_kube_config_contexts(config_file=kubeconfig)
        namespace = (active or {}).get("context", {}).get("namespace")
        if namespace:
            return namespace
    except (ConfigException, OSError, yaml.YAMLError) as e:
        log.debug(f"No kubeconfig context namespace: {e}")

    return "default"


class KubeSecretSaveMethod(SaveMethod):
    """Save and load init data in a Kubernetes Secret."""

    name = "kube_secret"

    def __init__(
        self,
        secret_name: str = DEFAULT_SECRET_NAME,
        namespace: Optional[str] = None,
        key: str = DEFAULT_SECRET_KEY,
        labels: Optional[dict[str, str]] = None,
        annotations: Optional[dict[str, str]] = None,
        overwrite: bool = False,
        kubeconfig: Optional[str] = None,
        api: Optional[k8s_client.CoreV1Api] = None,
    ):
        """Initialize the save method.

        Args:
            secret_name: Secret name.
            namespace: Secret namespace; None resolves to the caller's namespace.
            key: Key inside the secret holding the init JSON.
            labels: Labels applied to the secret.
            annotations: Annotations applied to the secret.
            overwrite: Replace an existing secret instead of failing.
            kubeconfig: Kubeconfig path; None tries in-cluster config first.
            api: Pre-built CoreV1Api (tests); bypasses config loading.
        """
        self.secret_name = secret_name
        self._namespace = namespace
        self.key = key
        self.labels = labels or {}
        self.annotations = annotations or {}
        self.overwrite = overwrite
        self.kubeconfig = kubeconfig
        self._api = api

    @classmethod
    def from_config(cls, config: KubeSecretSaveMethodConfig) -> "KubeSecretSaveMethod":
        return cls(
            secret_name=config.name,
            namespace=config.namespace,
            key=config.key,
            labels=config.labels,
            annotations=config.annotations,
            overwrite=config.overwrite,
            kubeconfig=config.kubeconfig,
        )

    @property
    def namespace(self) -> str:
        if self._namespace is None:
            self._namespace = default_namespace(self.kubeconfig)
        return self._namespace

    @property
    def location(self) -> str:
        return f"secret/{self.namespace}/{self.secret_name}"

    # -------------------------------------------------------------------------
    # API access
    # -------------------------------------------------------------------------

    def _load_client_configuration(self) -> k8s_client.Configuration:
        configuration = k8s_client.Configuration()
        if self.kubeconfig:
            k8s_config.load_kube_config(
                config_file=self.kubeconfig, client_configuration=configuration
            )
            return configuration
        try:
            k8s_config.load_incluster_config(client_configuration=configuration)
        except ConfigException:
            log.debug("Not running in-cluster, loading default kubeconfig")
            k8s_config.load_kube_config(client_configuration=configuration)
        return configuration

    @contextmanager
    def _core_api(self) -> Iterator[k8s_client.CoreV1Api]:
        """CoreV1Api whose ApiClient is closed on exit."""
        if self._api is not None:
            yield self._api
            return

        try:
            configuration = self._load_client_configuration()
        except (ConfigException, OSError, yaml.YAMLError) as e:
            raise SaveError(f"Unable to load Kubernetes configuration: {e}") from e

        api_client = k8s_client.ApiClient(configuration)
        try:
            yield k8s_client.CoreV1Api(api_client)
        finally:
            api_client.close()

    def _read_existing(self, api: k8s_client.CoreV1Api) -> Optional[k8s_client.V1Secret]:
        """Read the secret, or None if it does not exist."""
        try:
            return api.read_namespaced_secret(self.secret_name, self.namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    def _build_secret(self, result: InitResult) -> k8s_client.V1Secret:
        return k8s_client.V1Secret(
            api_version="v1",
            kind="Secret",
            type="Opaque",
            metadata=k8s_client.V1ObjectMeta(
                name=self.secret_name,
                namespace=self.namespace,
                labels=self.labels or None,
                annotations=self.annotations or None,
            ),
            string_data={self.key: result.to_json()},
        )

    # -------------------------------------------------------------------------
    # SaveMethod
    # -------------------------------------------------------------------------

    def save(self, result: InitResult) -> str:
        with self._core_api() as api:
            log.debug(f"Saving init data to {self.location}")
            secret = self._build_secret(result)
            try:
                existing = self._read_existing(api)
                if existing is not None:
                    if not self.overwrite:
                        raise SaveTargetExistsError(self.name, self.location)
                    log.warning(f"Existing secret found at {self.location}, overwriting")
                    secret.metadata.resource_version = existing.metadata.resource_version
                    api.replace_namespaced_secret(self.secret_name, self.namespace, secret)
                else:
                    api.create_namespaced_secret(self.namespace, secret)
            except ApiException as e:
                raise SaveError(
                    f"Failed to write {self.location}: {e.status} {e.reason}"
                ) from e
            except urllib3.exceptions.HTTPError as e:
                raise SaveError(f"Failed to write {self.location}: {e}") from e

        return self.location

    def load(self) -> InitResult:
        try:
            with self._core_api() as api:
                log.debug(f"Loading init data from {self.location}")
                secret = self._read_existing(api)
        except ApiException as e:
            raise LoadError(self.name, self.location, f"{e.status} {e.reason}") from e
        except (SaveError, urllib3.exceptions.HTTPError) as e:
            raise LoadError(self.name, self.location, str(e)) from e

        if secret is None:
            raise LoadError(self.name, self.location, "secret does not exist")

        data = secret.data or {}
        if self.key not in data:
            raise LoadError(self.name, self.location, f"secret has no key {self.key!r}")

        try:
            raw = base64.b64decode(data[self.key], validate=True)
            return InitResult.model_validate_json(raw)
        except binascii.Error as e:
            raise LoadError(self.name, self.location, "value is not base64") from e
        except ValidationError as e:
            raise LoadError(
                self.name, self.location, f"invalid init data ({e.error_count()} error(s))"
            ) from e
