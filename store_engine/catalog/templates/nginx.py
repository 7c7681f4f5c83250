#store_engine\catalog\templates\nginx.py
"""Nginx template - static web server defined inline."""

from store_engine.core.templates import (
    EnvDefinition, InlineTemplateSource, StoreTemplate
)


NGINX_COMPOSE = """services:
  nginx:
    image: nginx:${NGINX_VERSION}
    container_name: nginx
    restart: unless-stopped
    ports:
      - "8080:80"
    volumes:
      - ./html:/usr/share/nginx/html:ro
    environment:
      - TZ=${TZ}
"""


NGINX_TEMPLATE = StoreTemplate(
    app_id="nginx",
    template_name="nginx",
    name="Nginx Web Server",
    description="Lightweight web server for serving static content",
    categories=["Web"],
    logo_url="https://nginx.org/nginx.png",

    source=InlineTemplateSource(compose_content=NGINX_COMPOSE),

    env=[
        EnvDefinition(
            name="NGINX_VERSION",
            default="alpine",
            label="Nginx Version",
            description="Docker image tag",
        ),
        EnvDefinition(
            name="TZ",
            default="UTC",
            label="Timezone",
        ),
    ],
)
