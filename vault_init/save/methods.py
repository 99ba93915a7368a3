"""Save method aggregation.

``SaveMethods`` composes the configured save methods in a fixed order
(file, kube_secret, vault_kv):

- ``save_all`` is sequential-abort: the first failing method stops the
  operation and later methods are never attempted.
- ``load_all`` is first-success-wins: a failing method falls through to the
  next one.
"""
import logging
from typing import Iterable

from vault_init.exceptions import NoSaveMethodError, SaveError
from vault_init.models.config import SaveMethodConfig
from vault_init.models.vault import InitResult
from vault_init.save.base import SaveMethod
from vault_init.save.file import FileSaveMethod
from vault_init.save.kube_secret import KubeSecretSaveMethod
from vault_init.save.vault_kv import VaultKVSaveMethod

log = logging.getLogger(__name__)


class SaveMethods:
    """Ordered set of configured save methods."""

    def __init__(self, methods: Iterable[SaveMethod] = ()):
        self.methods: list[SaveMethod] = list(methods)

    @classmethod
    def from_config(cls, config: SaveMethodConfig) -> "SaveMethods":
        """Build save methods from config. Absent methods are skipped."""
        methods: list[SaveMethod] = []
        if config.file is not None:
            methods.append(FileSaveMethod.from_config(config.file))
        if config.kube_secret is not None:
            methods.append(KubeSecretSaveMethod.from_config(config.kube_secret))
        if config.vault_kv is not None:
            methods.append(VaultKVSaveMethod.from_config(config.vault_kv))
        return cls(methods)

    @property
    def configured(self) -> bool:
        return bool(self.methods)

    @property
    def names(self) -> list[str]:
        return [m.name for m in self.methods]

    def save_all(self, result: InitResult) -> list[str]:
        """Save ``result`` with every configured method, in order.

        Returns:
            Locations written.

        Raises:
            NoSaveMethodError: No save method is configured.
            SaveError: A method failed; later methods were not attempted.
        """
        if not self.methods:
            raise NoSaveMethodError("No save method configured, init data would be lost")

        locations = []
        for method in self.methods:
            try:
                location = method.save(result)
            except SaveError:
                log.error(f"Save method {method.name} failed, not attempting remaining methods")
                raise
            log.info(f"Saved init data with {method.name} to {location}")
            locations.append(location)
        return locations

    def load_all(self) -> InitResult:
        """Load init data from the first configured method that succeeds.

        Raises:
            NoSaveMethodError: Every configured method failed (or none is configured).
        """
        for method in self.methods:
            try:
                result = method.load()
            except SaveError as e:
                log.warning(f"Save method {method.name} could not load init data: {e}")
                continue
            log.info(f"Loaded init data with {method.name} from {method.location}")
            return result

        raise NoSaveMethodError(
            f"No save method could supply init data (tried: {', '.join(self.names) or 'none'})"
        )
