# csp_server/config.py
# Flask app instance + environment-driven settings for the security header hook

from flask import Flask
from dotenv import load_dotenv
import os

load_dotenv()  # load .env for local dev

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _truthy(value) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _csv(value) -> tuple:
    """Split a comma separated env value, dropping blanks."""
    return tuple(part.strip() for part in (value or "").split(",") if part.strip())


def _int(value, default: int, minimum: int = 1) -> int:
    """Parse an env integer; bad or too-small values fail at startup."""
    try:
        parsed = int(value) if value not in (None, "") else default
    except ValueError:
        raise RuntimeError(f"expected an integer, got {value!r}") from None
    if parsed < minimum:
        raise RuntimeError(f"expected an integer >= {minimum}, got {parsed}")
    return parsed


def is_development_env() -> bool:
    """APP_ENV=development or a truthy FLASK_DEBUG selects the relaxed policy."""
    app_env = (os.getenv("APP_ENV") or "production").strip().lower()
    return app_env in ("dev", "development") or _truthy(os.getenv("FLASK_DEBUG"))


app = Flask(
    __name__,
    template_folder=os.path.join(BASE_DIR, "templates"),
)

app.secret_key = os.getenv("FLASK_SECRET_KEY", "dev")  # safe dev default

# Read once at import; tests flip these keys on app.config directly.
app.config["CSP_DEVELOPMENT"] = is_development_env()
app.config["CSP_REPORT_URI"] = os.getenv("CSP_REPORT_URI") or None
app.config["CSP_NONCE_BYTES"] = _int(os.getenv("CSP_NONCE_BYTES"), 16)
app.config["CSP_SCRIPT_HASHES"] = _csv(os.getenv("CSP_SCRIPT_HASHES"))
app.config["CSP_STYLE_HASHES"] = _csv(os.getenv("CSP_STYLE_HASHES"))
app.config["CSP_REPORT_RATE_LIMIT"] = os.getenv("CSP_REPORT_RATE_LIMIT", "60/minute")
