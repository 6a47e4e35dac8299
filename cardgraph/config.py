"""Runtime settings read from the environment.

Values come from the process environment, with a ``.env`` file in the
project root (or the path in ``CARDGRAPH_ENV_FILE``) filling in anything not
already set.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from cardgraph.errors import ConfigurationError

PROJECT_ROOT = Path(__file__).resolve().parent.parent
REQUIRED_VARS = ("NEO4J_URI", "NEO4J_USER", "NEO4J_PASSWORD")


class Settings(BaseModel):
    neo4j_uri: Optional[str] = None
    neo4j_user: Optional[str] = None
    neo4j_password: Optional[str] = None
    neo4j_database: str = "neo4j"
    host: str = "0.0.0.0"
    port: int = 3001
    static_dir: Path = PROJECT_ROOT / "public"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def is_secure_uri(self) -> bool:
        """Aura and ``+s`` schemes negotiate TLS themselves."""
        uri = self.neo4j_uri or ""
        return "databases.neo4j.io" in uri or uri.startswith(("neo4j+s://", "bolt+s://"))

    def missing(self) -> list[str]:
        values = {
            "NEO4J_URI": self.neo4j_uri,
            "NEO4J_USER": self.neo4j_user,
            "NEO4J_PASSWORD": self.neo4j_password,
        }
        return [name for name in REQUIRED_VARS if not values[name]]

    def validate_credentials(self) -> None:
        """Raise ConfigurationError if any Neo4j credential is unset."""
        missing = self.missing()
        if missing:
            raise ConfigurationError(
                f"Missing Neo4j credentials in environment: {', '.join(missing)}"
            )


def _split_origins(raw: Optional[str]) -> list[str]:
    if not raw:
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()] or ["*"]


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build Settings from ``.env`` plus the environment.

    Credentials are not validated here; call ``validate_credentials`` at
    startup.
    """
    env_path = env_file or os.getenv("CARDGRAPH_ENV_FILE") or str(PROJECT_ROOT / ".env")
    load_dotenv(dotenv_path=env_path)

    static_dir = os.getenv("STATIC_DIR")
    return Settings(
        neo4j_uri=os.getenv("NEO4J_URI"),
        neo4j_user=os.getenv("NEO4J_USER"),
        neo4j_password=os.getenv("NEO4J_PASSWORD"),
        neo4j_database=os.getenv("NEO4J_DATABASE") or "neo4j",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3001")),
        static_dir=Path(static_dir) if static_dir else PROJECT_ROOT / "public",
        cors_origins=_split_origins(os.getenv("CORS_ORIGINS")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
