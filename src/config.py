"""
Configuration for the Digital Twin metamodel MCP server.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    MCP server configuration loaded from environment variables.

    Environment variables:
        METAMODEL_PATH: Path to the metamodel triple file.
                        Defaults to the bundled ontology/metamodel.json
        DEBOUNCE_DELAY: Seconds to wait after an edit before revalidating. Default: 0.5
        LOG_LEVEL: Logging level name. Default: INFO
    """

    metamodel_path: Optional[Path] = Field(
        default=None,
        alias="METAMODEL_PATH",
        description="Path to the metamodel JSON file"
    )

    debounce_delay: float = Field(
        default=0.5,
        alias="DEBOUNCE_DELAY",
        ge=0,
        description="Revalidation delay after an edit, in seconds"
    )

    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level name (DEBUG, INFO, WARNING, ...)"
    )


# Global settings instance
settings = Settings()


def get_default_metamodel_path() -> Path:
    """Get path to the bundled metamodel.json file."""
    return Path(__file__).parent / "ontology" / "metamodel.json"


def get_metamodel_path() -> Path:
    """Configured metamodel path, falling back to the bundled file."""
    return settings.metamodel_path or get_default_metamodel_path()


def configure_logging() -> None:
    """Configure root logging once, on stderr (stdout carries the MCP stream)."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
