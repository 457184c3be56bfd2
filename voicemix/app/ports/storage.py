from abc import ABC, abstractmethod


class IObjectStore(ABC):
    @abstractmethod
    def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str | None = None,
    ) -> str:
        """Write ``body`` under ``key`` (overwriting) and return the key."""

    @abstractmethod
    def signed_read_url(self, key: str, ttl_seconds: int) -> str:
        """Return a presigned GET URL for ``key`` valid for ``ttl_seconds``."""

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Return the stable public URL of ``key``. Pure, no network I/O."""
