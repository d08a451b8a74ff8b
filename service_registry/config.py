import os

# Service Registry Configuration
SERVICE_REGISTRY_PORT = int(
    os.getenv("SERVICE_REGISTRY_PORT", os.getenv("PORT", "3009"))
)
SERVICE_REGISTRY_HOST = os.getenv("SERVICE_REGISTRY_HOST", "0.0.0.0")
API_PREFIX = os.getenv("API_PREFIX", "")

# Liveness Configuration
REGISTRY_TIMEOUT_SECONDS = float(os.getenv("REGISTRY_TIMEOUT_SECONDS", "15"))
REAPER_INTERVAL_SECONDS = float(os.getenv("REAPER_INTERVAL_SECONDS", "5"))
REAPER_POLICY = os.getenv("REAPER_POLICY", "mark_down")  # "mark_down" or "evict"
REAPER_ENABLED = os.getenv("REAPER_ENABLED", "true").lower() == "true"

# Addressing Configuration
ADDRESSING_MODE = os.getenv("ADDRESSING_MODE", "url")  # "url" or "ip_port"
TRUST_PROXY = os.getenv("TRUST_PROXY", "true").lower() == "true"

# CORS Configuration
CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
    if origin.strip()
]

# Logging Configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv(
    "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
LOG_FORMAT_TYPE = os.getenv("LOG_FORMAT_TYPE", "structured")  # "structured" or "simple"
LOG_ENABLE_CONSOLE = os.getenv("LOG_ENABLE_CONSOLE", "true").lower() == "true"
LOG_ENABLE_FILE = os.getenv("LOG_ENABLE_FILE", "false").lower() == "true"
LOG_FILE_PATH = os.getenv("LOG_FILE_PATH", "/var/log/service-registry.log")
