"""Provider/runtime configuration for the Gemini model layer.

Architectural role:
    Centralizes endpoint, model selection and credential lookup for
    `nanoprompt.llm.client`, `nanoprompt.image.client` and the credential gate.

Model call flow integration:
    - `llm.service.describe_image_for_prompt` consumes `PROMPT_MODEL`.
    - `image.service.generate_image_from_prompt` consumes `IMAGE_MODEL`.
    - Both transports consume `GEMINI_URL_TEMPLATE`, `REQUEST_TIMEOUT` and
      `load_key`.

Determinism:
    Deterministic for a fixed process environment and key file. Values are resolved
    at import time (plus runtime key reads in `load_key`).

Failure behavior:
    Missing key material is represented as `None` and surfaced by the transport
    as `MissingCredentialError`.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Opt-in debug logging for API/CLI adapters.
DEBUG = os.getenv("DEBUG") == "true"

GEMINI_API_BASE = os.getenv(
    "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta"
).rstrip("/")

GEMINI_URL_TEMPLATE = GEMINI_API_BASE + "/models/{model}:generateContent"

# Vision model used to reverse-engineer a prompt from an uploaded image.
PROMPT_MODEL = os.getenv("PROMPT_MODEL", "gemini-3-pro-preview")

# Image model the reverse-engineered prompt is written for.
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "gemini-3-pro-image-preview")

GEMINI_KEY_FILE = os.getenv("GEMINI_KEY_FILE", "config/gemini.key")

BILLING_HELP_URL = "https://ai.google.dev/gemini-api/docs/billing"


def _parse_timeout(raw):
    """Return a positive float timeout or `None` (wait indefinitely)."""
    if not raw:
        return None
    value = float(raw)
    if value <= 0:
        return None
    return value


# No timeout unless the operator sets one; in-flight calls are not cancellable.
REQUEST_TIMEOUT = _parse_timeout(os.getenv("REQUEST_TIMEOUT"))

MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", "20"))


def key_env_name(path):
    """Map a key file path to its environment override name.

    `config/gemini.key` -> `GEMINI_API_KEY`.
    """
    return os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"


def load_key(path=None):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/gemini.key` -> `GEMINI_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Key file path; defaults to `GEMINI_KEY_FILE`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - Missing file returns `None`.
        - Whitespace-only key material returns `None`.
    """
    path = path or GEMINI_KEY_FILE
    env_value = os.getenv(key_env_name(path))
    if env_value and env_value.strip():
        return env_value.strip()
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None


def store_key(api_key, path=None, persist=False):
    """Bind `api_key` to the running process and optionally write the key file.

    Args:
        api_key: Non-empty key string.
        path: Key file path; defaults to `GEMINI_KEY_FILE`.
        persist: Whether to write the key to `path` as well.
    """
    path = path or GEMINI_KEY_FILE
    os.environ[key_env_name(path)] = api_key
    if persist:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w") as f:
            f.write(api_key)
