import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file)
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./identity.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENVIRONMENT = data.get("ENVIRONMENT", "development")
    SERVICE_NAME = data.get("SERVICE_NAME", "IdentityService")

    # Access tokens (RS256)
    JWT_PRIVATE_KEY_PATH = data.get(
        "JWT_PRIVATE_KEY_PATH", os.path.join(ROOT_PATH, "keys", "private.pem")
    )
    JWT_PUBLIC_KEY_PATH = data.get(
        "JWT_PUBLIC_KEY_PATH", os.path.join(ROOT_PATH, "keys", "public.pem")
    )
    JWT_KEY_SIZE = int(data.get("JWT_KEY_SIZE", 2048))
    JWT_ISSUER = data.get("JWT_ISSUER", "identity-service")
    ACCESS_TOKEN_TTL_MINUTES = int(data.get("ACCESS_TOKEN_TTL_MINUTES", 15))
    MFA_CHALLENGE_TTL_MINUTES = int(data.get("MFA_CHALLENGE_TTL_MINUTES", 5))

    # Refresh tokens
    REFRESH_TOKEN_TTL_DAYS = int(data.get("REFRESH_TOKEN_TTL_DAYS", 7))
    ENFORCE_REFRESH_IP_BINDING = bool(
        data.get("ENFORCE_REFRESH_IP_BINDING", ENVIRONMENT == "production")
    )

    # Argon2id cost parameters (memory in KiB)
    ARGON2_MEMORY_COST = int(data.get("ARGON2_MEMORY_COST", 16384))
    ARGON2_TIME_COST = int(data.get("ARGON2_TIME_COST", 3))
    ARGON2_PARALLELISM = int(data.get("ARGON2_PARALLELISM", 2))
    ARGON2_HASH_LENGTH = int(data.get("ARGON2_HASH_LENGTH", 64))

    PASSWORD_HISTORY_SIZE = int(data.get("PASSWORD_HISTORY_SIZE", 5))

    # MFA
    MFA_CODE_TTL_MINUTES = int(data.get("MFA_CODE_TTL_MINUTES", 10))
    MFA_BACKUP_CODE_COUNT = int(data.get("MFA_BACKUP_CODE_COUNT", 10))
    MFA_DELIVERIES_PER_HOUR = int(data.get("MFA_DELIVERIES_PER_HOUR", 5))
    # Wrong codes accepted per login challenge
    MFA_VERIFY_MAX_ATTEMPTS = int(data.get("MFA_VERIFY_MAX_ATTEMPTS", 5))
    RATE_LIMIT_CACHE_SIZE = int(data.get("RATE_LIMIT_CACHE_SIZE", 10000))

    # Outbound email for MFA codes; empty host means codes are only logged
    SMTP_HOST = data.get("SMTP_HOST", "")
    SMTP_PORT = int(data.get("SMTP_PORT", 587))
    SMTP_USER = data.get("SMTP_USER", "")
    SMTP_PASSWORD = data.get("SMTP_PASSWORD", "")
    SMTP_FROM = data.get("SMTP_FROM", "no-reply@identity.local")
    SMTP_USE_TLS = bool(data.get("SMTP_USE_TLS", True))

    STORE_TIMEOUT_SECONDS = float(data.get("STORE_TIMEOUT_SECONDS", 10))

    # Per-IP budget for register/login
    SENSITIVE_RATE_LIMIT = int(data.get("SENSITIVE_RATE_LIMIT", 50))
    SENSITIVE_RATE_WINDOW_MINUTES = int(data.get("SENSITIVE_RATE_WINDOW_MINUTES", 15))
