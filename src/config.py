"""NPC decision engine settings (environment variables, then .env)."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service-level settings.

    Core modules never read these; NPCService receives them as arguments.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # NPC decision engine
    NPC_DECISION_COOLDOWN_MINUTES: int = 15
    NPC_MEMORY_CAPACITY: int = 100
    NPC_RNG_SEED: Optional[int] = None

    # Simulation
    SIMULATION_WORKERS: int = 4


settings = Settings()
