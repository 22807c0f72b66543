"""Transfer tuning passed explicitly to orchestrators and clients."""

from dataclasses import dataclass

DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024  # 5 MiB, a multiple of the 256 KiB protocol granule


@dataclass(frozen=True)
class TransferConfig:
    """Chunking, retry and timeout settings for one transfer."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_attempts: int = 5
    backoff_base_seconds: float = 0.25
    backoff_cap_seconds: float = 8.0
    init_timeout_seconds: float = 15.0
    relay_timeout_seconds: float = 300.0
    resource_url_template: str = "https://www.youtube.com/watch?v={resource_id}"
    direct_resource_url_template: str = "https://iframe.videodelivery.net/{resource_id}"

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_settings(cls) -> "TransferConfig":
        """Build a config from the process settings."""
        from mediarelay.core.config import settings

        return cls(
            chunk_size=settings.UPLOAD_CHUNK_SIZE_BYTES,
            max_attempts=settings.UPLOAD_MAX_ATTEMPTS,
            backoff_base_seconds=settings.UPLOAD_BACKOFF_BASE_SECONDS,
            backoff_cap_seconds=settings.UPLOAD_BACKOFF_CAP_SECONDS,
            init_timeout_seconds=settings.INIT_TIMEOUT_SECONDS,
            relay_timeout_seconds=settings.RELAY_TIMEOUT_SECONDS,
            resource_url_template=settings.REMOTE_RESOURCE_URL_TEMPLATE,
            direct_resource_url_template=settings.DIRECT_RESOURCE_URL_TEMPLATE,
        )

    def resource_url(self, resource_id: str) -> str:
        return self.resource_url_template.format(resource_id=resource_id)

    def direct_resource_url(self, resource_id: str) -> str:
        return self.direct_resource_url_template.format(resource_id=resource_id)
