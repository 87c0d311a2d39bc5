"""Configuration management for the hostedctl application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

class Config:
    """Application configuration with sensible defaults."""

    # External tools
    TOOLKIT_BIN: str = os.getenv("HOSTEDCTL_TOOLKIT_BIN", "hypershift")
    KUBECTL_BIN: str = os.getenv("HOSTEDCTL_KUBECTL_BIN", "kubectl")

    # Image overrides
    CONTROL_PLANE_OPERATOR_IMAGE: str = os.getenv("CONTROL_PLANE_OPERATOR_IMAGE", "")

    # Manifest apply retry
    APPLY_ATTEMPTS: int = int(os.getenv("APPLY_ATTEMPTS", "3"))
    APPLY_BACKOFF: float = float(os.getenv("APPLY_BACKOFF", "10"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Security
    REDACT_KEYS: tuple = ("key", "password", "secret", "token", "pull")

    @classmethod
    def control_plane_operator_image(cls) -> str:
        """Image override for the control-plane operator, read at call time."""
        return os.getenv("CONTROL_PLANE_OPERATOR_IMAGE", cls.CONTROL_PLANE_OPERATOR_IMAGE)
