"""Entry point: build a demo site and print its structure."""

import sys

import structlog

from cms.config import Settings
from cms.errors import CMSError
from cms.logging import configure_logging
from cms.models import ContentRecord, ContentType, Principal, Role
from cms.service import SiteService
from cms.tree.nodes import Container

logger = structlog.get_logger()


def build_demo_site(service: SiteService) -> None:
    """Populate a site with a small category and content structure.

    Args:
        service: Service wrapping an empty site.
    """
    admin = Principal(username="admin", role=Role.ADMINISTRATOR)
    author = Principal(username="jane_doe", role=Role.AUTHOR)

    news = service.add_category(admin, service.site, "News", "Company announcements")
    guides = service.add_category(admin, service.site, "Guides")
    setup = service.add_category(admin, guides, "Setup")

    release = service.add_content(
        author,
        news,
        ContentRecord(title="Release 2.0", body="What changed in 2.0.", created_by="jane_doe"),
    )
    service.add_content(
        author,
        setup,
        ContentRecord(
            title="Installing",
            body="Install the package.",
            content_type=ContentType.PAGE,
            created_by="jane_doe",
        ),
    )
    service.publish(admin, release)


def main() -> None:
    """Entry point for python -m cms."""
    settings = Settings()
    configure_logging(debug=settings.debug, json_logs=settings.json_logs)

    service = SiteService(Container.site("Demo Site", created_by="admin"), settings)
    try:
        build_demo_site(service)
    except CMSError as e:
        logger.error("demo_build_failed", error=str(e))
        sys.exit(1)

    print(service.display())
    print(f"Total items: {service.item_count()}")
    sys.exit(0)


if __name__ == "__main__":
    main()
