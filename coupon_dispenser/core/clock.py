import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


# Dependencia FastAPI; los tests la sustituyen con dependency_overrides
def get_clock() -> Clock:
    return now_ms
