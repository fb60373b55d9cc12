# rd_core/tasks.py
from __future__ import annotations

import logging

from celery import shared_task
from django.contrib.auth import get_user_model

from rd_core.workflows.sla_scanner import check_sla_breaches

logger = logging.getLogger(__name__)


@shared_task
def scan_request_sla(created_by_user_id: int | None = None) -> int:
    user = None
    if created_by_user_id:
        User = get_user_model()
        user = User.objects.filter(id=created_by_user_id).first()

    created = check_sla_breaches(created_by=user)
    logger.info("SLA scan raised %s new alert(s)", created)
    return created
