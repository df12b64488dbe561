"""
Celery Tasks
Background bookkeeping for submitted orders. Tasks are never retried
automatically; a failed export is logged and can be re-run by hand.
"""

import logging
import time
from datetime import datetime

from storefront.celery_worker import celery_app
from storefront.services.ledger import OrderLedger

logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def export_order_to_ledger(self, order_data: dict) -> dict:
    """
    Append a submitted order to the Excel ledger.

    Args:
        order_data: Order snapshot queued by checkout

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_id = order_data.get("order_id", "unknown")

    logger.info(f"📋 Task {task_id}: exporting order #{order_id}")
    start_time = time.time()

    result = OrderLedger().append(order_data)

    elapsed = round(time.time() - start_time, 3)
    result["task_id"] = task_id
    result["processing_time_seconds"] = elapsed

    if result["success"]:
        logger.info(f"✅ Task {task_id}: order #{order_id} exported in {elapsed}s")
    else:
        logger.warning(f"⚠️ Task {task_id}: order #{order_id} not exported - {result['message']}")

    return result


@celery_app.task
def health_check() -> dict:
    """Verify a worker is consuming."""
    return {
        "status": "healthy",
        "worker": "celery",
        "timestamp": datetime.now().isoformat(),
    }
