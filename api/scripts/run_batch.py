import argparse
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from skillmatch.config import BATCH_ACTIVE_WINDOW_DAYS, BATCH_PAUSE_SECONDS, BATCH_SIZE, BATCH_TOP_K
from skillmatch.repo import SqlMatchStore
from skillmatch.services.batch import BatchGenerator
from skillmatch.services.matching import MatchingService
from skillmatch.services.notifications import LoggingNotifier, OutboxNotifier


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate match suggestions for every active user")
    parser.add_argument("--batch-size", type=int, default=BATCH_SIZE)
    parser.add_argument("--pause-seconds", type=float, default=BATCH_PAUSE_SECONDS)
    parser.add_argument("--top-k", type=int, default=BATCH_TOP_K)
    parser.add_argument("--active-days", type=int, default=BATCH_ACTIVE_WINDOW_DAYS)
    parser.add_argument("--no-outbox", action="store_true", help="log notifications instead of queueing them")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    service = MatchingService(SqlMatchStore())
    generator = BatchGenerator(
        service,
        notifier=LoggingNotifier() if args.no_outbox else OutboxNotifier(),
        batch_size=args.batch_size,
        pause_seconds=args.pause_seconds,
        top_k=args.top_k,
        active_window_days=args.active_days,
    )
    result = generator.run()

    print(f"Batch {result.status}")
    for k, v in result.to_dict().items():
        print(f"- {k}: {v}")
    if result.status != "completed":
        sys.exit(1)


if __name__ == "__main__":
    main()
