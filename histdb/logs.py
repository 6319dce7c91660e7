import json, logging, sys, time, uuid
from typing import Optional

logger = logging.getLogger("histdb.ops")

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level="WARNING") -> None:
    if not isinstance(level, int):
        level = logging.getLevelName(str(level).upper())
        if not isinstance(level, int):
            level = logging.WARNING
    # force: each CLI invocation rebinds to the current sys.stderr
    logging.basicConfig(level=level, format=_FORMAT, stream=sys.stderr, force=True)


class LogContext:
    """Times one mutating operation and emits a single JSON record for it."""

    def __init__(self, action: str):
        self.action = action
        self.request_id = str(uuid.uuid4())
        self.start = time.perf_counter()
        self.payload = None
        self.result_data = None

    def set_payload(self, obj): self.payload = obj
    def set_result(self, obj): self.result_data = obj

    def write(self, result: str = "OK", err: Optional[str] = None) -> dict:
        elapsed_ms = int((time.perf_counter() - self.start) * 1000)
        rec = {
            "action": self.action,
            "request_id": self.request_id,
            "payload": self.payload,
            "data": self.result_data,
            "result": result,
            "err_msg": err,
            "latency_ms": elapsed_ms,
        }
        level = logging.INFO if result == "OK" else logging.ERROR
        logger.log(level, json.dumps(rec, ensure_ascii=False, default=str))
        return rec
