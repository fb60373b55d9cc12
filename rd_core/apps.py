# rd_core/apps.py

import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class RdCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "rd_core"
    verbose_name = "R&D development"

    def ready(self):
        from . import signals  # noqa

        logger.debug("rd_core signals registered")
