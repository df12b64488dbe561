"""
Order Ledger (Excel) with File Locking

Appends submitted orders to a spreadsheet the store keeps for bookkeeping.
Several Celery workers may export at once, so every read-modify-write runs
under a ``filelock`` lock next to the workbook.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from storefront.core.config import get_settings

logger = logging.getLogger(__name__)


class OrderLedger:
    """Workbook of submitted orders."""

    COLUMNS = [
        "order_id",
        "date_time",
        "order_type",
        "customer_name",
        "customer_phone",
        "address",
        "table_number",
        "payment_method",
        "items",
        "total_amount",
        "order_status",
        "exported_at",
    ]

    def __init__(self, directory: Optional[str] = None, filename: Optional[str] = None,
                 lock_timeout: Optional[int] = None):
        settings = get_settings()
        self.directory = Path(directory or settings.data_directory)
        self.path = self.directory / (filename or settings.excel_filename)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = lock_timeout if lock_timeout is not None else settings.excel_lock_timeout

    def _ensure_directory(self) -> None:
        if not self.directory.exists():
            self.directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created ledger directory: {self.directory}")

    def _load(self) -> pd.DataFrame:
        if self.path.exists():
            return pd.read_excel(self.path, engine="openpyxl")
        return pd.DataFrame(columns=self.COLUMNS)

    @staticmethod
    def items_text(items: Any) -> str:
        """One ``Nx label`` entry per cart line, ``; `` separated."""
        if isinstance(items, str):
            try:
                items = json.loads(items)
            except ValueError:
                return items
        return "; ".join(
            f"{line.get('quantity') or 1}x {line.get('custom_title') or line.get('name')}"
            for line in items or []
        )

    def append(self, order_data: dict[str, Any]) -> dict[str, Any]:
        """
        Append one order row.

        Returns:
            dict with ``success``, ``message``, ``order_id`` and ``exported_at``
        """
        self._ensure_directory()

        order_id = order_data.get("order_id")
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            with FileLock(str(self.lock_path), timeout=self.lock_timeout):
                logger.debug(f"Ledger lock acquired for order #{order_id}")

                df = self._load()
                export_time = datetime.now().isoformat()
                row = {
                    "order_id": order_id,
                    "date_time": order_data.get("created_at") or export_time,
                    "order_type": order_data.get("order_type"),
                    "customer_name": order_data.get("customer_name"),
                    "customer_phone": order_data.get("customer_phone"),
                    "address": order_data.get("address"),
                    "table_number": order_data.get("table_number"),
                    "payment_method": order_data.get("payment_method"),
                    "items": self.items_text(order_data.get("items")),
                    "total_amount": order_data.get("total_amount"),
                    "order_status": order_data.get("order_status"),
                    "exported_at": export_time,
                }

                df = pd.concat([df, pd.DataFrame([row])], ignore_index=True)
                df.to_excel(str(self.path), index=False, engine="openpyxl")

                logger.info(f"Order #{order_id} written to ledger {self.path}")
                result["success"] = True
                result["message"] = f"Order #{order_id} exported"
                result["exported_at"] = export_time

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Ledger lock timeout for order #{order_id}")

        return result

    def read_all(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        return pd.read_excel(self.path, engine="openpyxl").to_dict("records")
