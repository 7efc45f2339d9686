"""Jinja2 template store for notices and reports"""

from pathlib import Path
from typing import Any, Mapping, Optional

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
    select_autoescape,
)

from lifecycle_reconciler.domain.exceptions import (
    PreconditionMissingError,
    TemplateNotFoundError,
    TemplateRenderError,
)

PACKAGED_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

NOTICE_PENDING = "notice_pending"
NOTICE_DEACTIVATED = "notice_deactivated"
ADMIN_REPORT = "admin_report"
REQUIRED_TEMPLATES = (NOTICE_PENDING, NOTICE_DEACTIVATED, ADMIN_REPORT)


class JinjaTemplateRenderer:
    """Resolves template ids to `<id>.html` files under a single directory"""

    suffix = ".html"

    def __init__(self, template_dir: Optional[str] = None):
        self.template_dir = Path(template_dir) if template_dir else PACKAGED_TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_id: str, variables: Mapping[str, Any]) -> str:
        """
        Raises:
            TemplateNotFoundError: no such template in the store
            TemplateRenderError: template exists but failed to render (syntax, missing variable)
        """
        try:
            template = self.env.get_template(f"{template_id}{self.suffix}")
        except TemplateNotFound as e:
            raise TemplateNotFoundError(f"Template '{template_id}' not found in {self.template_dir}") from e
        except TemplateError as e:
            raise TemplateRenderError(f"Template '{template_id}' is invalid: {e}") from e

        try:
            return template.render(**variables)
        except TemplateError as e:
            raise TemplateRenderError(f"Rendering '{template_id}' failed: {e}") from e

    def require(self, *template_ids: str) -> None:
        """
        Raises:
            PreconditionMissingError: any of the templates cannot be loaded
        """
        missing = []
        for template_id in template_ids:
            try:
                self.env.get_template(f"{template_id}{self.suffix}")
            except TemplateError:
                missing.append(template_id)
        if missing:
            raise PreconditionMissingError(
                f"Required templates unavailable in {self.template_dir}: {', '.join(missing)}"
            )
