import asyncio
import logging
from functools import partial
from pathlib import Path
from typing import Optional
from urllib.parse import quote
from jinja2 import Environment, FileSystemLoader, select_autoescape
from mailjet_rest import Client
from content.email_content import get_random_unsubscribe_banner
from core.handlers.env_handler import env

logger = logging.getLogger(__name__)

BASE_URL = env.state["base_url"]
SENDER_EMAIL = env.state["sender"]
MAILJET_API_KEY = env.mailjet["api_key"]
MAILJET_SECRET_KEY = env.mailjet["secret_key"]

TEMPLATES_DIR = Path(__file__).resolve().parents[2] / "templates"

def build_link(path: str, token: str, base_url: str = BASE_URL) -> str:
    """Public page URL carrying a signed token as its query string."""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}?token={quote(token, safe='')}"

class EmailService:
    def __init__(self):
        self.mailjet = Client(auth=(MAILJET_API_KEY, MAILJET_SECRET_KEY), version='v3.1')
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            autoescape=select_autoescape(["html"])
        )

    def render_unsubscribe_email(self, name: str, resubscribe_url: str, banner_text: Optional[str] = None) -> str:
        template = self.env.get_template("unsubscribe-email.html")
        return template.render(
            name=name,
            base_url=BASE_URL,
            banner_text=banner_text or get_random_unsubscribe_banner(),
            resubscribe_url=resubscribe_url,
        )

    async def send_unsubscribe_confirmation_email(self,
        email: str,
        resubscribe_token: str,
        name: Optional[str] = None,
    ):
        """Send unsubscribe confirmation email with a one-click resubscribe link"""
        resubscribe_url = build_link("resubscribe", resubscribe_token)
        try:
            html_content = self.render_unsubscribe_email(name or email, resubscribe_url)
            data = {
                'Messages': [{
                    "From": {"Email": SENDER_EMAIL, "Name": "Elevate(Her)"},
                    "To": [{"Email": email, "Name": name or email}],
                    "Subject": "You've been unsubscribed",
                    "HTMLPart": html_content,
                    "TextPart": f"""
                    Hello {name or 'there'},

                    This email confirms that you have been unsubscribed from the Elevate(Her) newsletter.

                    If you unsubscribed by mistake, you can resubscribe at:
                    {resubscribe_url}

                    Best regards,
                    The Elevate(Her) Team
                    """
                }]
            }

            # Mailjet's client is blocking
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, partial(self.mailjet.send.create, data=data))

        except Exception:
            # The unsubscribe itself already succeeded
            logger.exception("Error sending unsubscribe confirmation to %s", email)
            return None

def new_email_service() -> EmailService:
    """EmailService factory"""
    return EmailService()
