"""
Compute and persist score snapshots for a cycle.
Usage: python -m scripts.score_cycle <cycle_id>
"""
import sys

from feedback360.database import SessionLocal
from feedback360.services.score_service import ScoreService


def score_cycle(cycle_id: int):
    db = SessionLocal()
    try:
        summary = ScoreService(db, user_role="system").recalculate_scores_for_cycle(cycle_id)
        print(summary.message)
        print(f"calculated={summary.calculated} skipped={summary.skipped} errors={summary.errors}")
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 2 or not sys.argv[1].isdigit():
        print("Usage: python -m scripts.score_cycle <cycle_id>")
        sys.exit(1)
    score_cycle(int(sys.argv[1]))
