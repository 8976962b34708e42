from os import getenv

PORT: int = int(getenv("PORT", 3080))

# The server is meant to run in a container, so it listens on all interfaces.
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

ROOT: str = getenv("DISTSERVE_ROOT", "dist")

LOG_REQUESTS: bool = getenv("DISTSERVE_LOG_REQUESTS", "1") == "1"

LOG_LEVEL: str = getenv("DISTSERVE_LOG_LEVEL", "info")

# Name of the variable holding the generative AI credential, which is
# injected by the secret store at deploy time.
GENAI_API_KEY: str = "GOOGLE_GENAI_API_KEY"

# EOF
