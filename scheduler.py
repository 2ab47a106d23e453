import time
import threading
import logging
import schedule
from utils import ConfigHelper

logger = logging.getLogger(__name__)

_scheduler_thread = None


def process_scheduled_tasks():
    """Run one scheduler pass inside the application context"""
    from app import app
    from pipeline_executors import run_scheduler_pass

    with app.app_context():
        try:
            return run_scheduler_pass()
        except Exception as e:
            logger.error(f"Error processing scheduled tasks: {e}")
            return None


def cleanup_old_data():
    """Remove expired locks, stale matches and old scheduler logs"""
    from app import app
    from database import db
    from pipeline_executors import execute_data_cleanup

    with app.app_context():
        try:
            return execute_data_cleanup(None)
        except Exception as e:
            logger.error(f"Error cleaning up old data: {e}")
            db.session.rollback()
            return None


def schedule_tasks():
    """Schedule all background tasks"""
    poll_seconds = ConfigHelper.get_scheduler_config()['poll_seconds']

    schedule.every(poll_seconds).seconds.do(process_scheduled_tasks)

    # Clean up every night at 2 AM
    schedule.every().day.at("02:00").do(cleanup_old_data)

    logger.info(f"Scheduled tasks configured, polling every {poll_seconds} seconds")


def run_scheduler():
    """Run the scheduler loop"""
    logger.info("Starting scheduler...")

    while True:
        try:
            schedule.run_pending()
            time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Scheduler stopped")
            break
        except Exception as e:
            logger.error(f"Scheduler error: {e}")
            time.sleep(300)  # Wait 5 minutes before retrying


def start_background_services():
    """Start all background services, returns False when disabled or already running"""
    global _scheduler_thread

    if not ConfigHelper.get_scheduler_config()['enabled']:
        logger.info("Background scheduler disabled")
        return False

    if _scheduler_thread and _scheduler_thread.is_alive():
        return False

    logger.info("Starting background services...")

    schedule.clear()
    schedule_tasks()

    _scheduler_thread = threading.Thread(target=run_scheduler, daemon=True)
    _scheduler_thread.start()
    logger.info("Scheduler started")
    return True


def is_running():
    return bool(_scheduler_thread and _scheduler_thread.is_alive())


if __name__ == '__main__':
    start_background_services()

    # Keep main thread alive
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Background services stopped")
