from typing import List, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    """
    Centralized application settings. Pydantic's BaseSettings will automatically
    load these from environment variables or a .env file.
    """
    # --- Storage ---
    STORAGE_BACKEND: Literal["memory", "neo4j"] = Field("memory", description="Where goal maps and learner maps are persisted.")

    # --- Neo4j Database Credentials ---
    NEO4J_URI: str = Field("", description="Bolt URI of the Neo4j instance.")
    NEO4J_USERNAME: str = Field("", description="Username for Neo4j.")
    NEO4J_PASSWORD: str = Field("", description="Password for Neo4j.")

    # --- Logging ---
    LOG_LEVEL: str = Field("INFO", description="Level applied to every logger created by get_logger.")

    # --- Input Bounds ---
    MAX_GRAPH_NODES: int = Field(2000, description="Largest node list accepted by the API.")
    MAX_GRAPH_EDGES: int = Field(5000, description="Largest edge list accepted by the API.")

    # --- HTTP ---
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost", "http://localhost:3000"],
        description="Origins allowed to call the API from a browser.",
    )
    EXPORT_FILENAME_PREFIX: str = Field("kitbuild-analytics", description="Prefix for exported analytics files.")

    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

settings = Settings()
