"""
Application configuration
"""
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Compiler
    CARGO: str = "cargo"

    # Pipeline
    DIST_ARTIFACTS: Literal["real", "lies"] = "real"
    DIST_PIPELINE: Literal["structured", "legacy"] = "structured"

    # Logging
    DIST_LOG_LEVEL: str = "INFO"

    @property
    def fake_artifacts(self) -> bool:
        """Whether linkage analysis should be faked (--artifacts=lies)"""
        return self.DIST_ARTIFACTS == "lies"

    class Config:
        env_file = ".env"
        case_sensitive = True
