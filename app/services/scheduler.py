# app/services/scheduler.py
"""
Scheduler service for the periodic consistency audit
"""

import asyncio
import logging
from typing import Any, Dict

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.services.consistency import find_violations, repair
from app.services.document_store import DocumentStore

logger = logging.getLogger(__name__)


class ConsistencyScheduler:
    """Runs the task/user consistency audit on an interval"""

    def __init__(self, store: DocumentStore, interval_minutes: int = 10, repair_enabled: bool = False):
        self.store = store
        self.interval_minutes = interval_minutes
        self.repair_enabled = repair_enabled
        self.scheduler = AsyncIOScheduler()
        self.is_running = False
        self.last_result: Dict[str, Any] = {}

    def start(self):
        """Start the scheduler"""
        if not self.is_running:
            self.scheduler.add_job(
                self.run_audit,
                trigger=IntervalTrigger(minutes=self.interval_minutes),
                id='consistency_audit',
                name='Task/User Consistency Audit',
                replace_existing=True
            )
            self.scheduler.start()
            self.is_running = True
            logger.info(f"Consistency audit scheduled every {self.interval_minutes} minutes")

    def stop(self):
        """Stop the scheduler"""
        if self.is_running:
            self.scheduler.shutdown()
            self.is_running = False
            logger.info("Consistency audit scheduler stopped")

    async def run_audit(self) -> Dict[str, Any]:
        """Check the assignment relation and, if enabled, repair it"""
        try:
            logger.info("Running consistency audit...")
            violations = await asyncio.to_thread(find_violations, self.store)

            for violation in violations:
                logger.warning(
                    f"Consistency violation {violation.kind}: task={violation.task_id} "
                    f"user={violation.user_id} ({violation.detail})"
                )

            rewritten = 0
            if violations and self.repair_enabled:
                rewritten = await asyncio.to_thread(repair, self.store)

            self.last_result = {"violations": len(violations), "repaired": rewritten}
            logger.info(f"Consistency audit found {len(violations)} violations")

        except Exception as e:
            logger.error(f"Error running consistency audit: {e}")
            self.last_result = {"error": str(e)}

        return self.last_result

    async def get_scheduler_status(self) -> Dict[str, Any]:
        """Get scheduler status and job information"""
        if not self.is_running:
            return {"status": "stopped", "jobs": [], "last_result": self.last_result}

        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger)
            })

        return {
            "status": "running",
            "jobs": jobs,
            "last_result": self.last_result
        }
