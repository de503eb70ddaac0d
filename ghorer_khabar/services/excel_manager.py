"""
Excel Report Exporter with Concurrency Control

Writes the admin dashboard report to an .xlsx workbook with three sheets:
    - Summary: headline metrics and the order status breakdown
    - Orders: most recent orders
    - Kitchens: top kitchens by revenue

Every export gets its own file, so a workbook being downloaded is never
rewritten by a later export. Names are claimed under a file lock.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from ghorer_khabar.core.config import get_settings

logger = logging.getLogger(__name__)


class ExcelManager:
    """Lock-protected Excel report writer."""

    ORDER_COLUMNS = [
        "order_id",
        "kitchen",
        "customer",
        "status",
        "delivery_date",
        "delivery_slot",
        "subtotal",
        "delivery_fee",
        "platform_fee",
        "total",
        "created_at",
    ]

    KITCHEN_COLUMNS = [
        "kitchen_id",
        "name",
        "zone",
        "total_orders",
        "revenue",
        "rating",
        "kri_score",
        "is_verified",
        "is_active",
    ]

    @classmethod
    def data_dir(cls) -> Path:
        return Path(get_settings().data_directory)

    @classmethod
    def _ensure_data_dir(cls) -> Path:
        """Create data directory if needed."""
        data_dir = cls.data_dir()
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")
        return data_dir

    @classmethod
    def report_path(cls, when: Optional[datetime] = None) -> Path:
        """First unused report name for ``when``; call while holding the export lock."""
        when = when or datetime.now()
        stem = f"admin-report-{when.strftime('%Y-%m-%d-%H%M%S-%f')}"
        path = cls.data_dir() / f"{stem}.xlsx"
        counter = 1
        while path.exists():
            path = cls.data_dir() / f"{stem}-{counter}.xlsx"
            counter += 1
        return path

    @classmethod
    def _summary_frame(cls, summary: dict[str, Any], status_counts: dict[str, int]) -> pd.DataFrame:
        rows = [{"metric": key, "value": value} for key, value in summary.items()]
        total = sum(status_counts.values())
        for status, count in status_counts.items():
            share = (count / total * 100) if total else 0.0
            rows.append({"metric": f"orders_{status.lower()}", "value": f"{count} ({share:.2f}%)"})
        return pd.DataFrame(rows, columns=["metric", "value"])

    @classmethod
    def export_admin_report(
        cls,
        summary: dict[str, Any],
        status_counts: dict[str, int],
        orders: list[dict[str, Any]],
        kitchens: list[dict[str, Any]],
        when: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """
        Write the admin report workbook.

        Returns:
            dict with ``success``, ``message``, ``path`` and ``exported_at``
        """
        data_dir = cls._ensure_data_dir()
        when = when or datetime.now()
        lock_timeout = get_settings().export_lock_timeout

        result = {
            "success": False,
            "message": "",
            "path": None,
            "exported_at": None,
        }

        try:
            lock = FileLock(str(data_dir / "admin-report.lock"), timeout=lock_timeout)

            with lock:
                path = cls.report_path(when)
                logger.debug(f"Lock acquired for {path.name}")

                summary_df = cls._summary_frame(summary, status_counts)
                orders_df = pd.DataFrame(orders, columns=cls.ORDER_COLUMNS)
                kitchens_df = pd.DataFrame(kitchens, columns=cls.KITCHEN_COLUMNS)

                with pd.ExcelWriter(str(path), engine="openpyxl") as writer:
                    summary_df.to_excel(writer, sheet_name="Summary", index=False)
                    orders_df.to_excel(writer, sheet_name="Orders", index=False)
                    kitchens_df.to_excel(writer, sheet_name="Kitchens", index=False)

                export_time = when.isoformat()
                logger.info(
                    f"Admin report exported: {len(orders)} orders, {len(kitchens)} kitchens -> {path}"
                )

                result["success"] = True
                result["message"] = f"Report exported to {path.name}"
                result["path"] = str(path)
                result["exported_at"] = export_time

            logger.debug(f"Lock released for {result['path']}")

        except Timeout:
            result["message"] = f"Lock timeout ({lock_timeout}s)"
            logger.error("Lock timeout for admin report export")

        except (OSError, ValueError) as e:
            result["message"] = str(e)
            logger.exception("Error writing admin report")

        return result

    @classmethod
    def read_sheet(cls, path: Path, sheet_name: str) -> list[dict[str, Any]]:
        """Read one sheet of a written report back as records."""
        if not Path(path).exists():
            return []
        df = pd.read_excel(path, sheet_name=sheet_name, engine="openpyxl")
        return df.to_dict("records")
