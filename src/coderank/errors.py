from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import RepositoryRef


class CoderankError(RuntimeError):
    pass


class RepositoryUnavailable(CoderankError):
    """A repository could not be synchronized or its history could not be walked."""

    def __init__(self, ref: RepositoryRef, cause: str) -> None:
        super().__init__(ref, cause)
        self.ref = ref
        self.cause = cause

    def __str__(self) -> str:
        return f"{self.ref.url} {self.ref.branch}: {self.cause}"


class ConfigurationError(CoderankError, ValueError):
    pass


class DedupStoreUnavailable(CoderankError):
    pass
