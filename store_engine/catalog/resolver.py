#store_engine\catalog\resolver.py

"""Template resolvers - catalog first, custom apps second."""

import logging
from threading import Lock
from typing import Dict, Iterable, Optional

from store_engine.core.templates import StoreTemplate, TemplateResolver

logger = logging.getLogger(__name__)


class InMemoryTemplateResolver(TemplateResolver):
    """Templates registered in process (built-in catalog, custom apps, tests)."""

    def __init__(self, templates: Iterable[StoreTemplate] = ()):
        self._templates: Dict[str, StoreTemplate] = {}
        self._lock = Lock()
        for template in templates:
            self.register(template)

    def register(self, template: StoreTemplate) -> None:
        with self._lock:
            self._templates[template.app_id] = template

    def find_template(self, app_id: str) -> Optional[StoreTemplate]:
        return self._templates.get(app_id)


class ChainedTemplateResolver(TemplateResolver):
    """Asks each resolver in order and returns the first hit."""

    def __init__(self, resolvers: Iterable[TemplateResolver]):
        self._resolvers = list(resolvers)

    def find_template(self, app_id: str) -> Optional[StoreTemplate]:
        for resolver in self._resolvers:
            template = resolver.find_template(app_id)
            if template is not None:
                return template

        logger.debug(f"[catalog] no template for {app_id}")
        return None
