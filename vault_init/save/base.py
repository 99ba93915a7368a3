"""Save method interface.

A save method persists the ``InitResult`` to one durable location and
reads it back. Implementations are a closed set (file, kube secret, vault kv)
selected by ``SaveMethodConfig``.
"""
from abc import ABC, abstractmethod

from vault_init.models.vault import InitResult


class SaveMethod(ABC):
    """Save/load capability over a single location."""

    #: Short name used in logs and errors ("file", "kube_secret", "vault_kv")
    name: str = ""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable target location."""

    @abstractmethod
    def save(self, result: InitResult) -> str:
        """Persist ``result``.

        Raises:
            SaveTargetExistsError: Data exists and overwrite is disabled.
                Nothing is written.

        Returns:
            The location written.
        """

    @abstractmethod
    def load(self) -> InitResult:
        """Read the persisted ``InitResult``.

        Raises:
            LoadError: Data is absent, unreadable, or does not decode.
        """
