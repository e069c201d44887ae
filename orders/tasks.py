import logging

from celery import shared_task

from .validators import IntegrityValidator

logger = logging.getLogger(__name__)


@shared_task(name="orders.tasks.audit_integrity")
def audit_integrity():
    """
    Periodic task to re-check stored data against the integrity rules.
    Runs hourly via Celery Beat.
    """
    results = IntegrityValidator.run()
    summary = {name: len(violations) for name, violations in results.items()}

    for name, violations in results.items():
        for violation in violations:
            logger.error("Integrity violation [%s] %s: %s", name, violation.record_id, violation.message)

    total = sum(summary.values())
    if total:
        logger.warning("Integrity audit found %s violation(s): %s", total, summary)
    else:
        logger.info("Integrity audit passed")
    return summary
