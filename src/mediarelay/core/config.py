"""Configuration management for the MediaRelay service."""

from urllib.parse import urlsplit

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "mediarelay"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Upload Constraints
    MAX_UPLOAD_MB: int = 1536  # 1.5 GB
    ALLOWED_MEDIA_PREFIX: str = "video/"
    DIRECT_UPLOAD_SIZE_THRESHOLD_MB: int = 200  # Files at or below this use direct upload

    # Remote host (resumable upload protocol)
    REMOTE_SESSION_URL: str = (
        "https://www.googleapis.com/upload/youtube/v3/videos"
        "?uploadType=resumable&part=snippet,status"
    )
    REMOTE_RESOURCE_URL_TEMPLATE: str = "https://www.youtube.com/watch?v={resource_id}"
    REMOTE_TOKENINFO_URL: str = "https://www.googleapis.com/oauth2/v1/tokeninfo"
    REMOTE_UPLOAD_SCOPE: str = "https://www.googleapis.com/auth/youtube.upload"
    REMOTE_PRIVACY_STATUS: str = "unlisted"
    # Extra hosts the relay may forward to, comma-separated; the REMOTE_SESSION_URL
    # host is always allowed
    ALLOWED_UPLOAD_TARGET_HOSTS: str = ""

    # Direct upload provider (server-side credential)
    DIRECT_UPLOAD_URL: str = ""
    DIRECT_UPLOAD_API_TOKEN: str = ""
    DIRECT_UPLOAD_MAX_DURATION_SECONDS: int = 3600
    DIRECT_RESOURCE_URL_TEMPLATE: str = "https://iframe.videodelivery.net/{resource_id}"

    # Timeouts
    INIT_TIMEOUT_SECONDS: float = 15.0  # Session initiation is a fast call
    RELAY_TIMEOUT_SECONDS: float = 300.0  # Chunk relay, sized for 5 MiB on slow links

    # Chunk transfer tuning
    UPLOAD_CHUNK_SIZE_BYTES: int = 5 * 1024 * 1024
    UPLOAD_MAX_ATTEMPTS: int = 5
    UPLOAD_BACKOFF_BASE_SECONDS: float = 0.25
    UPLOAD_BACKOFF_CAP_SECONDS: float = 8.0
    RELAY_MAX_CHUNK_BYTES: int = 32 * 1024 * 1024  # Largest body the relay will buffer

    # Outbound session creation pacing
    INIT_RATE_LIMIT_REQUESTS: int = 2
    INIT_RATE_LIMIT_WINDOW_SECONDS: float = 1.0

    # Local session
    SESSION_COOKIE_NAME: str = "mediarelay_session"

    @property
    def max_upload_bytes(self) -> int:
        """Convert MAX_UPLOAD_MB to bytes."""
        return self.MAX_UPLOAD_MB * 1024 * 1024

    @property
    def direct_upload_threshold_bytes(self) -> int:
        """Convert DIRECT_UPLOAD_SIZE_THRESHOLD_MB to bytes."""
        return self.DIRECT_UPLOAD_SIZE_THRESHOLD_MB * 1024 * 1024

    @property
    def upload_target_hosts(self) -> frozenset[str]:
        """Hosts the chunk relay may forward the upstream credential to."""
        hosts = {host.strip().lower() for host in self.ALLOWED_UPLOAD_TARGET_HOSTS.split(",")}
        session_host = urlsplit(self.REMOTE_SESSION_URL).hostname
        if session_host:
            hosts.add(session_host.lower())
        hosts.discard("")
        return frozenset(hosts)


# Singleton settings instance
settings = Settings()
