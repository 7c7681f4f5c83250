#store_engine\catalog\templates\adguard_home.py
"""AdGuard Home template - network-wide DNS ad blocker."""

from store_engine.core.templates import (
    EnvDefinition, RepositoryTemplateSource, StoreTemplate
)


ADGUARD_HOME_TEMPLATE = StoreTemplate(
    app_id="adguard-home",
    template_name="adguard-home",
    name="AdGuard Home",
    description="Network-wide software for blocking ads and tracking",
    categories=["Network"],
    logo_url="https://cdn.jsdelivr.net/gh/walkxcode/dashboard-icons/png/adguard-home.png",

    source=RepositoryTemplateSource(
        repository_url="https://github.com/bigbeartechworld/big-bear-portainer",
        stack_file="Apps/adguard-home/docker-compose.yml",
    ),

    env=[
        EnvDefinition(
            name="TZ",
            default="UTC",
            label="Timezone",
            description="Container timezone",
        ),
    ],
)
