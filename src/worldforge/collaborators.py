"""Seams to the outside world: secrets and user-chosen files.

The core never touches a keychain or a file picker directly. It talks to a
SecretStore for API keys and a FileSource for import payloads, so callers
can plug in whatever their platform offers.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from worldforge.graph.errors import InvalidFieldError, ProviderNotAllowedError
from worldforge.observability.logging import get_logger
from worldforge.policy import AccessPolicy, AIProvider

if TYPE_CHECKING:
    from collections.abc import MutableMapping

log = get_logger(__name__)

ENV_PREFIX = "WORLDFORGE_"


class SecretStore(Protocol):
    """Named secret storage."""

    def get(self, name: str) -> str | None: ...

    def set(self, name: str, value: str) -> None: ...

    def delete(self, name: str) -> None: ...


class MemorySecretStore:
    """SecretStore held in process memory."""

    def __init__(self) -> None:
        self._secrets: dict[str, str] = {}

    def get(self, name: str) -> str | None:
        return self._secrets.get(name)

    def set(self, name: str, value: str) -> None:
        self._secrets[name] = value

    def delete(self, name: str) -> None:
        self._secrets.pop(name, None)


class EnvSecretStore:
    """SecretStore backed by environment variables.

    A secret named ``openai_api_key`` lives in ``WORLDFORGE_OPENAI_API_KEY``.
    Writes only affect the given mapping (``os.environ`` by default), never
    the parent shell.
    """

    def __init__(self, environ: MutableMapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    @staticmethod
    def variable(name: str) -> str:
        return ENV_PREFIX + name.upper()

    def get(self, name: str) -> str | None:
        return self._environ.get(self.variable(name)) or None

    def set(self, name: str, value: str) -> None:
        self._environ[self.variable(name)] = value

    def delete(self, name: str) -> None:
        self._environ.pop(self.variable(name), None)


class FileSource(Protocol):
    """Where import payloads come from."""

    def read(self, reference: str) -> bytes: ...


class LocalFileSource:
    """FileSource reading from the local filesystem.

    Args:
        root: Directory relative references are resolved against.
            Defaults to the current working directory.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = root

    def resolve(self, reference: str) -> Path:
        path = Path(reference).expanduser()
        if self.root is not None and not path.is_absolute():
            path = self.root / path
        return path

    def read(self, reference: str) -> bytes:
        """Read the whole file.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        path = self.resolve(reference)
        data = path.read_bytes()
        log.debug("file_read", path=str(path), size=len(data))
        return data


def secret_name(provider: AIProvider) -> str:
    return f"{provider.value}_api_key"


class ApiKeyRing:
    """API keys for AI providers, gated by the access policy.

    Args:
        secrets: Where keys are stored.
        policy: Decides which providers may have a key.
    """

    def __init__(self, secrets: SecretStore, policy: AccessPolicy | None = None) -> None:
        self.secrets = secrets
        self.policy = policy or AccessPolicy.free()

    def _check_provider(self, provider: AIProvider) -> None:
        if not self.policy.allows_provider(provider):
            raise ProviderNotAllowedError(
                provider=provider.value,
                allowed=[p.value for p in AIProvider if self.policy.allows_provider(p)],
            )

    def set_key(self, provider: str | AIProvider, key: str) -> None:
        """Validate and store *key* for *provider*.

        Raises:
            ProviderNotAllowedError: If the policy excludes the provider.
            InvalidFieldError: If the key is empty or has the wrong prefix.
        """
        resolved = AIProvider(provider)
        self._check_provider(resolved)
        key = key.strip()
        if not key:
            raise InvalidFieldError(field_name="API key", reason="must not be empty")
        if not key.startswith(resolved.key_prefix):
            raise InvalidFieldError(
                field_name="API key",
                reason=f"{resolved.display_name} keys start with '{resolved.key_prefix}'",
            )
        self.secrets.set(secret_name(resolved), key)
        log.info("api_key_stored", provider=resolved.value)

    def get_key(self, provider: str | AIProvider) -> str | None:
        """Return the stored key, or None if none is stored or the policy excludes it."""
        resolved = AIProvider(provider)
        if not self.policy.allows_provider(resolved):
            return None
        return self.secrets.get(secret_name(resolved))

    def remove_key(self, provider: str | AIProvider) -> None:
        resolved = AIProvider(provider)
        self.secrets.delete(secret_name(resolved))
        log.info("api_key_removed", provider=resolved.value)

    def configured(self) -> list[AIProvider]:
        """Providers that are allowed and have a key stored."""
        return [p for p in AIProvider if self.get_key(p) is not None]
