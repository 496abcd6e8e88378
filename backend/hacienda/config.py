from pydantic_settings import BaseSettings
from pydantic import Field, model_validator, field_validator
import secrets

class Settings(BaseSettings):
    # ===== ENTORNO =====
    environment: str = Field(default="development", env="ENVIRONMENT")
    debug: bool = Field(default=False, env="DEBUG")

    # ===== DATABASE =====
    database_url: str = Field(default="sqlite:///./data/hacienda.db", env="DATABASE_URL")

    # ===== SECURITY =====
    secret_key: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        env="SECRET_KEY"
    )
    access_token_expire_minutes: int = Field(default=720, env="ACCESS_TOKEN_EXPIRE_MINUTES")

    # ===== ADMIN (bootstrap en desarrollo) =====
    admin_email: str = Field(default="admin@lahacienda.mx", env="ADMIN_EMAIL")
    admin_pass: str = Field(default="admin", env="ADMIN_PASS")

    @field_validator("admin_email", "admin_pass", mode="after")
    @classmethod
    def empty_to_default(cls, v: str, info) -> str:
        if v and v.strip():
            return v.strip()
        return "admin@lahacienda.mx" if info.field_name == "admin_email" else "admin"

    # ===== CORS =====
    allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        env="ALLOWED_ORIGINS"
    )

    # ===== LOGS =====
    log_dir: str = Field(default="logs", env="LOG_DIR")

    # ===== NEGOCIO =====
    empresa_nombre: str = Field(default="LA HACIENDA TORTILLAS", env="EMPRESA_NOMBRE")

    class Config:
        env_file = ".env"
        case_sensitive = False

    @model_validator(mode="after")
    def validate_secret_key(self):
        if self.environment == "production" and len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY debe tener al menos 32 caracteres en producción.")
        return self

    @property
    def is_development(self) -> bool:
        return self.environment in ("development", "dev")

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


settings = Settings()
