"""Template loading utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import yaml
from pydantic import ValidationError

from ..storage.base import StoragePort
from ..storage.models import Project
from .models import Template


class TemplateLoadError(RuntimeError):
    """Raised when one or more template files cannot be parsed."""


class TemplateNotFoundError(LookupError):
    """Raised when a template id is not present in any search path."""


class TemplateLoader:
    """Loads project templates from YAML files on disk."""

    def __init__(self, search_paths: Iterable[Path] | None = None) -> None:
        paths = [Path(path) for path in (search_paths or [])]
        self._search_paths: list[Path] = [path for path in paths if path.exists()]

    @property
    def search_paths(self) -> list[Path]:
        return list(self._search_paths)

    def load_all(self) -> dict[str, Template]:
        """Load templates from all configured search paths.

        Later search paths override earlier ones when template ids collide.
        """

        if not self._search_paths:
            return {}

        templates: dict[str, Template] = {}
        errors: list[str] = []

        for base in self._search_paths:
            for path in sorted(base.glob("*.yml")) + sorted(base.glob("*.yaml")):
                try:
                    document = yaml.safe_load(path.read_text(encoding="utf-8"))
                except yaml.YAMLError as exc:
                    errors.append(f"Failed to parse YAML in {path}: {exc}")
                    continue

                if document is None:
                    continue

                try:
                    template = Template.model_validate(document)
                except ValidationError as exc:
                    errors.append(f"Template validation error in {path}: {exc}")
                    continue

                templates[template.id] = template

        if errors:
            raise TemplateLoadError("; ".join(errors))

        return templates

    def search(self, *, category: str | None = None, query: str | None = None) -> list[Template]:
        templates = list(self.load_all().values())
        if category:
            templates = [template for template in templates if template.category == category]
        if query:
            templates = [template for template in templates if template.matches(query)]
        return templates

    def get(self, template_id: str) -> Template:
        templates = self.load_all()
        try:
            return templates[template_id]
        except KeyError as exc:
            raise TemplateNotFoundError(f"Template '{template_id}' not found") from exc


def create_project_from_template(
    storage: StoragePort,
    template: Template,
    *,
    name: str | None = None,
) -> Project:
    """Create a project with the template's settings and seed its file store."""

    project = storage.create_project(
        name=name or f"{template.name} Project",
        settings=template.settings.model_copy(deep=True),
    )
    for template_file in template.files:
        storage.save_file(project.id, template_file.path, template_file.content)
    return project


__all__ = [
    "TemplateLoadError",
    "TemplateLoader",
    "TemplateNotFoundError",
    "create_project_from_template",
]
