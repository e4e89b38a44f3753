import typing as t
import os
from dotenv import load_dotenv
from core.utils.str import parse_env_var_to_list

dotenv_path = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), ".env")
load_dotenv(dotenv_path=dotenv_path)

class EnvHandler:
    def __init__(self):
        """Add new variables below"""
        self.state = {
            "node_env": self.get("NODE_ENV", "development"),
            "base_url": self.get("BASE_URL", "http://localhost:3000"),
            "sender": self.get("SENDER_EMAIL", "no-reply@elevateher.tech"),
            "client_local": self.get("CLIENT_URL_LOCAL", "http://localhost:3000"),
            "client_prod": self.get("CLIENT_URL_PROD", "https://elevateher.tech"),
        }
        self.mongo = {
            "uri": self.get("MONGO_URI", "mongodb://localhost:27017"),
            "db": self.get("DATABASE_NAME", "elevateher"),
        }
        self.mailjet = {
            "api_key": self.get("MAILJET_API_KEY", ""),
            "secret_key": self.get("MAILJET_SECRET_KEY", ""),
        }
        # An empty secret is refused by the token service on every call
        self.newsletter = {
            "secret": self.get("NEWSLETTER_SECRET", ""),
            "ttl_days": self.get("NEWSLETTER_TTL_DAYS", 365, cast=int),
        }
        self.auth = {
            "admin_api_key": self.get("ADMIN_API_KEY", ""),
            "allow_headers": parse_env_var_to_list(self.get("ALLOW_HEADERS", "")),
            "allow_origins": parse_env_var_to_list(self.get("ALLOW_ORIGINS", "")),
        }

    def get(self, key: str, default: t.Union[t.Any, None] = None, cast: t.Union[type, None] = None) -> t.Any:
        """
        Fetch an environment variable with optional casting and default fallback.
        - (key) Name of the environment variable.
        - (default) Default value if the variable is not found.
        - `cast`: Type to cast the value into (e.g., int, float, bool).
        - `returns`: The value of the environment variable.
        - `raises`: `KeyError` if the variable is not found and no default is provided.
        """
        value = os.getenv(key, default)
        if value is None:
            raise KeyError(f"Missing required environment variable: {key}")
        if cast:
            try:
                value = cast(value)
            except ValueError as e:
                raise ValueError(f"Error casting environment variable {key} to {cast}: {e}")

        return value

env = EnvHandler()
