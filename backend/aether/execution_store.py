# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution Store - Persistent storage for workflow execution history.

Every finished run (including detached webhook runs nobody waits for) ends
up here, so failures stay inspectable after the fact.

Writes are serialized through a single async lock
"""
import json
import logging
import asyncio
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiofiles

from aether.workflow.models import ExecutionRecord

logger = logging.getLogger(__name__)


class ExecutionStore:
    """
    Store and query workflow execution history.

    Storage structure:
        executions/
        └── {YYYY-MM-DD}/
            ├── exec_20250101_120000_ab12cd34.json
            └── exec_20250101_120005_ef56ab78.json

    Each execution file is a serialized ExecutionRecord:
        - execution_id / workflow_id
        - status (completed/failed/timed_out)
        - trigger_source
        - started_at / finished_at
        - node_results
        - output / response / error
    """

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

        # One lock for all writes; records are small and written once
        self._write_lock = asyncio.Lock()

    @staticmethod
    def _date_dir_name(execution_id: str) -> Optional[str]:
        # Execution ids look like exec_YYYYMMDD_HHMMSS_hash
        try:
            date_str = execution_id.split("_")[1]
            return datetime.strptime(date_str, "%Y%m%d").strftime("%Y-%m-%d")
        except (IndexError, ValueError):
            return None

    async def save(self, record: ExecutionRecord) -> str:
        """
        Save execution to disk.

        Returns:
            Path to saved file
        """
        date = self._date_dir_name(record.execution_id) or datetime.now().strftime("%Y-%m-%d")

        date_dir = self.base_dir / date
        date_dir.mkdir(parents=True, exist_ok=True)

        execution_file = date_dir / f"{record.execution_id}.json"
        # Node outputs are arbitrary values; anything JSON cannot hold is stored as str()
        content = json.dumps(record.to_jsonable(), indent=2)

        async with self._write_lock:
            async with aiofiles.open(execution_file, "w") as f:
                await f.write(content)

        return str(execution_file)

    def get(self, execution_id: str) -> Optional[Dict[str, Any]]:
        """
        Get execution by ID.

        Returns:
            Execution data or None if not found
        """
        date = self._date_dir_name(execution_id)
        if date is None:
            return self._search_all_dates(execution_id)

        execution_file = self.base_dir / date / f"{execution_id}.json"
        if execution_file.exists():
            return json.loads(execution_file.read_text())

        return None

    def _search_all_dates(self, execution_id: str) -> Optional[Dict[str, Any]]:
        """Search for execution across all dates"""
        for date_dir in self.base_dir.glob("*"):
            if not date_dir.is_dir():
                continue

            execution_file = date_dir / f"{execution_id}.json"
            if execution_file.exists():
                return json.loads(execution_file.read_text())

        return None

    def list(
        self,
        date: Optional[str] = None,
        workflow_id: Optional[str] = None,
        status: Optional[str] = None,
        trigger_source: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """
        List executions with optional filters.

        Args:
            date: Filter by date (YYYY-MM-DD)
            workflow_id: Filter by workflow
            status: Filter by status (completed/failed/timed_out)
            trigger_source: Filter by trigger (manual/webhook/schedule)
            limit: Max results to return
            offset: Skip first N results

        Returns:
            List of executions (newest first)
        """
        executions = []

        if date:
            date_dirs = [self.base_dir / date]
        else:
            date_dirs = sorted(self.base_dir.glob("*"), reverse=True)

        for date_dir in date_dirs:
            if not date_dir.is_dir():
                continue

            for execution_file in sorted(date_dir.glob("exec_*.json"), reverse=True):
                try:
                    execution_data = json.loads(execution_file.read_text())
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Failed to load execution {execution_file}: {e}")
                    continue

                if workflow_id and execution_data.get("workflow_id") != workflow_id:
                    continue
                if status and execution_data.get("status") != status:
                    continue
                if trigger_source and execution_data.get("trigger_source") != trigger_source:
                    continue

                executions.append(execution_data)

                if len(executions) >= limit + offset:
                    break

            if len(executions) >= limit + offset:
                break

        return executions[offset:offset + limit]

    def get_statistics(self, days: int = 30) -> Dict[str, Any]:
        """
        Get execution statistics for last N days.

        Returns:
            Statistics dict with counts and success rate, grouped by
            workflow and by trigger source
        """
        cutoff = (datetime.now() - timedelta(days=days)).strftime("%Y-%m-%d")
        executions = [
            e for e in self.list(limit=100000)
            if (e.get("started_at") or "")[:10] >= cutoff
        ]

        total = len(executions)
        completed = sum(1 for e in executions if e.get("status") == "completed")

        by_workflow: Dict[str, Dict[str, int]] = {}
        by_trigger: Dict[str, int] = {}
        for execution in executions:
            stats = by_workflow.setdefault(
                execution.get("workflow_id", "unknown"),
                {"total": 0, "completed": 0, "failed": 0}
            )
            stats["total"] += 1
            if execution.get("status") == "completed":
                stats["completed"] += 1
            else:
                stats["failed"] += 1

            trigger = execution.get("trigger_source", "unknown")
            by_trigger[trigger] = by_trigger.get(trigger, 0) + 1

        return {
            "period_days": days,
            "total_executions": total,
            "completed": completed,
            "failed": total - completed,
            "success_rate": (completed / total * 100) if total > 0 else 0,
            "by_workflow": by_workflow,
            "by_trigger": by_trigger
        }

    def delete_old_executions(self, days: int = 90) -> int:
        """
        Delete executions older than N days (cleanup).

        Returns:
            Number of executions deleted
        """
        cutoff_date = datetime.now() - timedelta(days=days)
        deleted_count = 0

        for date_dir in self.base_dir.glob("*"):
            if not date_dir.is_dir():
                continue

            try:
                dir_date = datetime.strptime(date_dir.name, "%Y-%m-%d")
            except ValueError:
                logger.warning(f"Invalid date directory name: {date_dir.name}")
                continue

            if dir_date < cutoff_date:
                for execution_file in date_dir.glob("exec_*.json"):
                    execution_file.unlink()
                    deleted_count += 1

                if not any(date_dir.iterdir()):
                    date_dir.rmdir()

        return deleted_count
