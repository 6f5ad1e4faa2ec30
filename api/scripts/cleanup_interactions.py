import argparse
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from skillmatch.config import INTERACTION_RETENTION_DAYS
from skillmatch.repo import SqlMatchStore
from skillmatch.services.batch import BatchGenerator
from skillmatch.services.matching import MatchingService


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete expired PASS and VIEW match interactions")
    parser.add_argument("--retention-days", type=int, default=INTERACTION_RETENTION_DAYS)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    generator = BatchGenerator(MatchingService(SqlMatchStore()), retention_days=args.retention_days)
    deleted = generator.cleanup_old_interactions()
    print(f"Cleanup completed: {deleted} interactions deleted")


if __name__ == "__main__":
    main()
