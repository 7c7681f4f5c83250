#store_engine\core\templates.py

"""Store template models and the resolver contract."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Union


@dataclass(frozen=True)
class EnvDefinition:
    """Env variable declared by a template."""
    name: str
    default: Optional[str] = None
    label: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class RepositoryTemplateSource:
    """Compose file living in a git repository (catalog templates)."""
    repository_url: str
    stack_file: str
    kind: Literal["repository"] = "repository"


@dataclass(frozen=True)
class InlineTemplateSource:
    """Compose document stored as text (custom apps)."""
    compose_content: str
    kind: Literal["inline"] = "inline"


TemplateSource = Union[RepositoryTemplateSource, InlineTemplateSource]


@dataclass(frozen=True)
class StoreTemplate:
    """Installable application definition."""

    app_id: str
    template_name: str
    name: str
    source: TemplateSource
    env: List[EnvDefinition] = field(default_factory=list)
    description: str = ""
    categories: List[str] = field(default_factory=list)
    logo_url: Optional[str] = None

    @property
    def env_names(self) -> List[str]:
        return [definition.name for definition in self.env]

    @property
    def env_defaults(self) -> Dict[str, str]:
        return {
            definition.name: definition.default
            for definition in self.env
            if definition.default is not None
        }


class TemplateResolver(ABC):
    """Looks templates up by app id (catalog or custom apps)."""

    @abstractmethod
    def find_template(self, app_id: str) -> Optional[StoreTemplate]:
        """Returns None if no template is registered for the app."""
        raise NotImplementedError
