"""
Gameweek Predictor Background Scheduler Service

Runs the periodic sweeps of the engine with APScheduler: revoking
submissions that no longer match their round, and announcing leagues whose
members have all submitted for the current round.
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from predictor.services.snapshot import load_snapshot
from predictor.services.submission_service import heal_all_rounds, league_all_submitted
from predictor.signals import league_round_submitted

logger = logging.getLogger(__name__)


class SchedulerService:
    """Manages background sweeps over submissions and leagues"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.announced = set()
        self.sync_stats = self._empty_stats()

        if app:
            self.init_app(app)

    @staticmethod
    def _empty_stats():
        return {
            "last_run": None,
            "total_runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_error": None,
            "submissions_revoked": 0,
            "leagues_announced": 0,
        }

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        # Register shutdown
        atexit.register(self.shutdown)

        # Start scheduler if enabled
        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler.remove_all_jobs()
            self._add_core_jobs()
            self.scheduler.start()
            self.is_running = True

            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        """Add core scheduled jobs"""
        config = self.app.config

        self.scheduler.add_job(
            func=self._heal_submissions,
            trigger=IntervalTrigger(minutes=config.get("HEAL_INTERVAL_MINUTES", 10)),
            id="heal_submissions",
            name="Revoke Inconsistent Submissions",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )

        self.scheduler.add_job(
            func=self._check_league_submissions,
            trigger=IntervalTrigger(
                minutes=config.get("LEAGUE_CHECK_INTERVAL_MINUTES", 5)
            ),
            id="check_league_submissions",
            name="Announce Fully Submitted Leagues",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )

        logger.info("Core scheduled jobs added")

    def _heal_submissions(self):
        """Revoke submissions whose picks no longer cover their round"""
        with self.app.app_context():
            try:
                healed = heal_all_rounds()
                revoked = sum(len(user_ids) for user_ids in healed.values())

                if revoked:
                    logger.warning(f"Healing sweep revoked {revoked} submissions")
                self._update_stats(True, revoked=revoked)

            except Exception as e:
                logger.error(f"Error in submission healing sweep: {e}")
                self._update_stats(False, error=e)

    def _check_league_submissions(self):
        """Signal each league once per round when all members have submitted"""
        with self.app.app_context():
            try:
                announced = self.announce_complete_leagues(load_snapshot())
                self._update_stats(True, announced=announced)

            except Exception as e:
                logger.error(f"Error checking league submissions: {e}")
                self._update_stats(False, error=e)

    def announce_complete_leagues(self, snapshot):
        """
        Send league_round_submitted for newly complete leagues.

        Returns:
            int: number of signals sent
        """
        round_number = snapshot.current_round()
        if round_number is None:
            return 0

        sent = 0
        for league_id in snapshot.leagues:
            key = (league_id, round_number)
            if key in self.announced:
                continue
            if league_all_submitted(snapshot, league_id, round_number):
                self.announced.add(key)
                league_round_submitted.send(
                    self.app, league_id=league_id, round_number=round_number
                )
                logger.info(
                    f"League {league_id} fully submitted for round {round_number}"
                )
                sent += 1
        return sent

    def _update_stats(self, success, revoked=0, announced=0, error=None):
        """Update run statistics"""
        self.sync_stats["last_run"] = datetime.now(timezone.utc)
        self.sync_stats["total_runs"] += 1

        if success:
            self.sync_stats["successful_runs"] += 1
            self.sync_stats["submissions_revoked"] += revoked
            self.sync_stats["leagues_announced"] += announced
            self.sync_stats["last_error"] = None
        else:
            self.sync_stats["failed_runs"] += 1
            self.sync_stats["last_error"] = str(error) if error else None

        # Keep counters bounded on long-running processes
        if self.sync_stats["total_runs"] > 10000:
            last_run = self.sync_stats["last_run"]
            self.sync_stats = self._empty_stats()
            self.sync_stats["last_run"] = last_run

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        stats = dict(self.sync_stats)
        if stats["last_run"]:
            stats["last_run"] = stats["last_run"].isoformat()
        return {"is_running": self.is_running, "jobs": jobs, "stats": stats}

    def force_run(self, job="heal"):
        """Manually trigger a sweep"""
        if job == "heal":
            self._heal_submissions()
        elif job == "leagues":
            self._check_league_submissions()
        else:
            return False, f"Unknown job: {job}"
        return True, f"Manual {job} run completed"


# Global scheduler instance
scheduler_service = SchedulerService()
