"""毫秒时间戳"""
import threading
import time


def now_ms() -> int:
    """当前时间（毫秒级 epoch）"""
    return int(time.time() * 1000)


class MonotonicClock:
    """单调不减的毫秒时钟

    系统时间回拨时返回上一次的值，保证同一写入方产生的
    lastModified / lastLocalChange 不会倒退。
    """

    def __init__(self, source=now_ms):
        self._source = source
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            self._last = max(self._last, self._source())
            return self._last
