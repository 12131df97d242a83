"""Daily trigger for the alert notification job (Celery beat)."""
