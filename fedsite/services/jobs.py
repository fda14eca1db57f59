"""Background job functions for RQ worker."""


def deliver_notification_job(payload):
    """Background job to deliver an owner notification."""
    from fedsite import create_app

    app = create_app()

    with app.app_context():
        try:
            from fedsite.services.notifications import send_notification
            return send_notification(payload)
        except Exception as e:
            app.logger.error(f"Notification job failed: {str(e)}")
            raise


__all__ = ['deliver_notification_job']
