IDLE = "idle"
RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"

BATCH_STATES = frozenset({IDLE, RUNNING, COMPLETED, FAILED})


def transition_batch_state(current: str, action: str) -> str:
    if current not in BATCH_STATES:
        return current

    if action == "start":
        if current == IDLE:
            return RUNNING
        return current

    if action == "finish":
        if current == RUNNING:
            return COMPLETED
        return current

    if action == "fail":
        if current == RUNNING:
            return FAILED
        return current

    if action == "reset":
        if current in {COMPLETED, FAILED}:
            return IDLE
        return current

    return current
