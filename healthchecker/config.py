import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    HEALTHCHECK_INTERVAL_S: float = float(os.getenv("HEALTHCHECK_INTERVAL_S", "15"))
    HEALTHCHECK_TIMEOUT_MS: int = int(os.getenv("HEALTHCHECK_TIMEOUT_MS", "500"))
    HEALTHCHECK_WORKERS: int = max(1, int(os.getenv("HEALTHCHECK_WORKERS", "1")))
    HEALTHCHECK_RESET_EACH_ROUND: bool = _env_bool("HEALTHCHECK_RESET_EACH_ROUND")
    HEALTHCHECK_USER_AGENT: str = os.getenv(
        "HEALTHCHECK_USER_AGENT", "healthchecker/1.0"
    )

    @property
    def timeout_s(self) -> float:
        return self.HEALTHCHECK_TIMEOUT_MS / 1000.0


settings = Settings()
