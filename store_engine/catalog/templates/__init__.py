#store_engine\catalog\templates\__init__.py

"""Built-in store templates."""

from .adguard_home import ADGUARD_HOME_TEMPLATE
from .nginx import NGINX_TEMPLATE


BUILTIN_TEMPLATES = [ADGUARD_HOME_TEMPLATE, NGINX_TEMPLATE]

__all__ = ["ADGUARD_HOME_TEMPLATE", "NGINX_TEMPLATE", "BUILTIN_TEMPLATES"]
