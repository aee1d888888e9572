# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URLs, WSGI application and the Celery app that runs the weekly
# settlement.
#
# The Celery app is imported here so it is loaded when Django starts and
# shared_task decorators bind to it.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
