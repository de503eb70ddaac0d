"""
Email template rendering.

HTML bodies live in ``ghorer_khabar/templates/email`` and extend
``base.html``; every template receives ``app_name`` and ``app_base_url``.
"""

from functools import lru_cache

from jinja2 import Environment, PackageLoader, select_autoescape

from ghorer_khabar.core.config import get_settings


@lru_cache()
def get_template_environment() -> Environment:
    return Environment(
        loader=PackageLoader("ghorer_khabar", "templates/email"),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_email(template_name: str, **context) -> str:
    """Render an email template to an HTML string."""
    settings = get_settings()
    template = get_template_environment().get_template(template_name)
    return template.render(
        app_name=settings.app_name,
        app_base_url=settings.app_base_url.rstrip("/"),
        **context,
    )
