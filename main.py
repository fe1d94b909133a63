"""
AutoApply - CLI Entry Point.

Starts a processing run for a user and polls its progress until it ends.
Ctrl+C cancels the run.
"""

import logging
import sys
import threading
import time

from dotenv import load_dotenv

load_dotenv()

from autoapply.config import settings
from autoapply.db.base import get_session_factory, init_db
from autoapply.pipeline.errors import PipelineError, PreconditionFailed
from autoapply.pipeline.orchestrator import RunOrchestrator
from autoapply.pipeline.policy import load_run_config
from autoapply.pipeline.status import get_status
from autoapply.tools.discovery import create_discovery_client
from autoapply.tools.match_scorer import create_match_scorer
from autoapply.tools.notifier import create_notifier


def format_status(status) -> str:
    line = f"[{status.status}] {status.progress}% ({status.jobs_processed}/{status.jobs_found} jobs)"
    if status.estimated_end_time:
        line += f" ETA {status.estimated_end_time:%H:%M:%S}"
    if status.error:
        line += f" - {status.error}"
    return line


def main():
    """Run the pipeline once for the user given on the command line."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    print("AutoApply")
    print("=" * 40)

    if len(sys.argv) < 2:
        print("Usage: python main.py <user_id>")
        return

    user_id = sys.argv[1]

    print("\nInitializing...")
    try:
        init_db()
        session_factory = get_session_factory()
        orchestrator = RunOrchestrator(
            session_factory=session_factory,
            discovery=create_discovery_client(),
            scorer=create_match_scorer(),
            notifier=create_notifier(),
        )
    except ValueError as e:
        print(f"Error: {e}")
        return

    with session_factory() as db:
        config = load_run_config(db, user_id)

    try:
        run_id = orchestrator.start(user_id, config)
    except PreconditionFailed as e:
        print(f"Cannot start: {e.reason}")
        return
    except PipelineError as e:
        print(f"Cannot start: {e}")
        return

    print(f"Run {run_id} started\n")
    worker = threading.Thread(target=orchestrator.execute, args=(run_id, user_id, config), daemon=True)
    worker.start()

    last_line = None
    try:
        while True:
            with session_factory() as db:
                status = get_status(db, run_id)
            line = format_status(status)
            if line != last_line:
                print(line)
                last_line = line
            if status.status != "processing":
                break
            time.sleep(settings.poll_interval)
    except KeyboardInterrupt:
        print("\nCancelling...")
        try:
            orchestrator.cancel(run_id, user_id=user_id)
        except PipelineError as e:
            print(f"Cancel failed: {e}")

    worker.join(timeout=settings.poll_interval)
    print("Done.")


if __name__ == "__main__":
    main()
