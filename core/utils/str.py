import string
import random

def random_id():
    characters = string.ascii_uppercase + string.digits
    return ''.join(random.choices(characters, k=8))

rate_limit_warnings = [
    "Whoa there! Take a breath and try again in a bit.",
    "You're clicking faster than we can keep up. Slow down and refresh later!",
    "Too many requests in a row. Give it a minute and try again.",
    "Easy does it. Your request limit resets shortly.",
    "HTTP 429: Too Many Requests. Grab a coffee and come back!",
    "Hold on, we're giving your browser a short break.",
]

def get_random_rate_limit_warning(warnings = rate_limit_warnings):
    return random.choice(warnings)

def parse_env_var_to_list(env_var: str, separator: str = "|") -> list[str]:
    """Parse a pipe-separated string from an environment variable into a list of strings."""
    if not env_var:
        return []
    return [item.strip() for item in env_var.split(separator) if item.strip()]

def normalize_email(email: str) -> str:
    return (email or "").strip().lower()
