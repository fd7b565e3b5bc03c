import logging
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

logger = logging.getLogger(__name__)

# Environment variable prefix
ENV_PREFIX = "RN_BRIDGE_"


class BridgeSettings(BaseSettings):
    """Main configuration settings loaded from environment variables."""

    # Logging Settings
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    log_format: str = Field(default='%(asctime)s - %(name)s - %(levelname)s - %(message)s', description="Logging format string")
    log_to_file: bool = Field(default=False, description="Enable logging to file with rotation")
    log_file_path: str = Field(default="logs/rn_bridge.log", description="Path to the log file (directory will be created)")
    log_max_lines_per_file: int = Field(default=5000, description="Maximum lines per log file before rotation")
    log_max_files: int = Field(default=10, description="Maximum number of log files to keep")

    # Discovery Settings
    host: str = Field(default="localhost", description="Host the bundler listens on")
    scan_start_port: int = Field(default=8081, description="First port of the default scan range (inclusive)")
    scan_end_port: int = Field(default=19002, description="Last port of the default scan range (inclusive)")
    common_ports: List[int] = Field(default_factory=lambda: [8081, 8082, 19000, 19001, 19002],
                                    description="Well-known bundler ports probed when they fall inside the scan range")
    probe_timeout: float = Field(default=0.5, description="TCP reachability probe timeout per port (seconds)")
    scan_timeout: float = Field(default=5.0, description="Overall timeout for one discovery scan (seconds)")
    http_timeout: float = Field(default=2.0, description="Timeout for the instance metadata request (seconds)")
    metadata_path: str = Field(default="/json/list", description="Bundler path listing debuggable instances")
    max_concurrent_probes: int = Field(default=256, description="Maximum TCP probes in flight during one scan")

    # Transport Settings
    call_timeout: float = Field(default=10.0, description="Default timeout for a single protocol call (seconds)")
    enable_domains: List[str] = Field(default_factory=lambda: ["Runtime", "Log", "Network"],
                                      description="Protocol domains enabled on attach, in order")
    max_message_size: int = Field(default=50 * 1024 * 1024, description="Maximum inbound websocket frame size (bytes)")

    # Telemetry Buffer Settings
    log_buffer_capacity: int = Field(default=1000, description="Console log ring buffer capacity")
    network_buffer_capacity: int = Field(default=500, description="Network request table capacity")

    # Renderer Settings
    render_max_depth: int = Field(default=2, description="Nesting depth rendered before placeholders are used")
    render_max_properties: int = Field(default=50, description="Properties or elements rendered per object")
    render_max_length: int = Field(default=10000, description="Maximum length of rendered text")

    # Tracing Settings
    tracing_enabled: bool = Field(default=False, description="Export OpenTelemetry spans over OTLP/HTTP")

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        env_prefix=ENV_PREFIX,
        extra='ignore',
        case_sensitive=False
    )


def load_settings() -> BridgeSettings:
    """Load settings from a .env file (if present) and the environment."""
    import os
    logger.debug(f"Loading bridge configuration from .env file and environment variables (prefix: '{ENV_PREFIX}')...")

    try:
        from dotenv import load_dotenv
        env_loaded = load_dotenv('.env', override=False)
        logger.debug(f".env loading result: {env_loaded}")
    except Exception as e:
        logger.warning(f"Failed to load .env file: {e}")

    bridge_vars = [k for k in os.environ if k.upper().startswith(ENV_PREFIX)]
    logger.debug(f"Found {len(bridge_vars)} {ENV_PREFIX} environment variables: {bridge_vars}")

    try:
        settings = BridgeSettings()
        logger.debug(
            f"Bridge configuration loaded: ports {settings.scan_start_port}-{settings.scan_end_port}, "
            f"call timeout {settings.call_timeout}s, buffers {settings.log_buffer_capacity}/{settings.network_buffer_capacity}"
        )
        return settings
    except Exception as e:
        logger.exception(f"Critical error loading bridge configuration: {e}")
        raise ValueError(f"Failed to load configuration: {e}") from e
