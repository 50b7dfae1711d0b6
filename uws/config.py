"""Configuration loaded from environment variables (.env supported)."""

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Database / storage
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///uws_metadata.db")
    # 'memory' 또는 'sqlalchemy'
    INSTANCE_STORE: str = os.getenv("INSTANCE_STORE", "memory")

    # Compute instance simulator (seconds)
    DEFAULT_REGION: str = os.getenv("DEFAULT_REGION", "us-east-1")
    CREATE_DELAY: float = float(os.getenv("CREATE_DELAY", "5"))
    START_DELAY: float = float(os.getenv("START_DELAY", "3"))
    STOP_DELAY: float = float(os.getenv("STOP_DELAY", "3"))
    RESTART_STOP_DELAY: float = float(os.getenv("RESTART_STOP_DELAY", "2"))
    RESTART_START_DELAY: float = float(os.getenv("RESTART_START_DELAY", "3"))

    # Auth
    TOKEN_TTL_MINUTES: int = int(os.getenv("TOKEN_TTL_MINUTES", "60"))
    ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "admin")

    # App
    HOST: str = os.getenv("HOST", "")
    PORT: int = int(os.getenv("PORT", "8000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")

    def lifecycle_delays(self):
        """ComputeService에 전달할 지연 시간 딕셔너리를 반환합니다."""
        return {
            "create": self.CREATE_DELAY,
            "start": self.START_DELAY,
            "stop": self.STOP_DELAY,
            "restart_stop": self.RESTART_STOP_DELAY,
            "restart_start": self.RESTART_START_DELAY,
        }


settings = Settings()
