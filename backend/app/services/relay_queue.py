"""
中继队列：服务端无法直接操作用户浏览器的标签页/截屏，
因此工具把这类请求写入内存表，由沙箱客户端轮询 GET /tab-requests 取走执行，
再通过 POST /tab-requests/{id}/complete 回报结果。

单写单删：客户端是 pending -> completed 的唯一写入方，创建请求的工具是唯一的 take 方。
complete / take 各自在锁内完成，保证单键原子性。进程重启后队列不保留。
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


class RequestKind(str, Enum):
    OPEN_TAB = "open-tab"
    SCREENSHOT = "screenshot"


class RequestStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class PendingRequest:
    """一条跨进程请求；result / error 只在 completed 后出现"""
    id: str
    kind: RequestKind
    payload: Dict[str, Any] = field(default_factory=dict)
    status: RequestStatus = RequestStatus.PENDING
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    completed_at: Optional[float] = None

    @property
    def is_completed(self) -> bool:
        return self.status is RequestStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "status": self.status.value,
            "payload": dict(self.payload),
            "result": dict(self.result) if self.result is not None else None,
            "error": self.error,
            "created_at": self.created_at,
        }


class RelayQueue:
    """待处理请求表。id 由毫秒时间戳生成并保证单调递增、唯一。"""

    def __init__(self, completed_ttl: Optional[float] = None, pending_ttl: Optional[float] = None):
        self._requests: Dict[str, PendingRequest] = {}
        self._lock = threading.Lock()
        self._last_id = 0
        self._completed_ttl = settings.RELAY_COMPLETED_TTL_SECONDS if completed_ttl is None else completed_ttl
        self._pending_ttl = settings.RELAY_PENDING_TTL_SECONDS if pending_ttl is None else pending_ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)

    def _next_id(self) -> str:
        now_ms = int(time.time() * 1000)
        self._last_id = max(now_ms, self._last_id + 1)
        return str(self._last_id)

    def enqueue(self, kind: RequestKind, payload: Optional[Dict[str, Any]] = None) -> str:
        """插入一条 pending 记录并立即返回 id（不阻塞）"""
        with self._lock:
            self._sweep_locked()
            request_id = self._next_id()
            self._requests[request_id] = PendingRequest(id=request_id, kind=kind, payload=dict(payload or {}))
        logger.info("中继请求入队 id=%s kind=%s", request_id, kind.value)
        return request_id

    def poll(self) -> List[PendingRequest]:
        """返回当前所有记录的快照（不论状态），供客户端读取"""
        with self._lock:
            return [
                PendingRequest(
                    id=r.id,
                    kind=r.kind,
                    payload=dict(r.payload),
                    status=r.status,
                    result=dict(r.result) if r.result is not None else None,
                    error=r.error,
                    created_at=r.created_at,
                    completed_at=r.completed_at,
                )
                for r in self._requests.values()
            ]

    def complete(self, request_id: str, result: Optional[Dict[str, Any]] = None, error: Optional[str] = None) -> bool:
        """
        pending -> completed，仅一次。
        未知 id 或已完成的记录返回 False 且不修改任何状态（客户端重试是幂等的）。
        """
        with self._lock:
            request = self._requests.get(request_id)
            if request is None:
                logger.debug("complete 未知请求 id=%s，忽略", request_id)
                return False
            if request.is_completed:
                logger.debug("请求 id=%s 已完成，重复 complete 忽略", request_id)
                return False
            request.status = RequestStatus.COMPLETED
            request.completed_at = time.time()
            if error:
                request.error = error
            else:
                request.result = dict(result or {})
        logger.info("中继请求完成 id=%s error=%s", request_id, bool(error))
        return True

    def get(self, request_id: str) -> Optional[PendingRequest]:
        with self._lock:
            return self._requests.get(request_id)

    def take(self, request_id: str) -> Optional[PendingRequest]:
        """已完成则取出并删除；仍为 pending 或不存在时返回 None，记录保持不变"""
        with self._lock:
            request = self._requests.get(request_id)
            if request is None or not request.is_completed:
                return None
            return self._requests.pop(request_id)

    def discard(self, request_id: str) -> Optional[PendingRequest]:
        """超时后无论状态直接删除"""
        with self._lock:
            return self._requests.pop(request_id, None)

    def clear(self) -> None:
        with self._lock:
            self._requests.clear()

    def _sweep_locked(self) -> None:
        """
        清理两类过期记录：已完成但超过 TTL 仍无人 take 的（如发出后不再等待的开标签请求），
        以及创建后超过 TTL 仍为 pending 的（客户端一直没有轮询）。TTL <= 0 表示不清理该类。
        """
        now = time.time()
        stale = []
        for rid, r in self._requests.items():
            if r.is_completed:
                if self._completed_ttl > 0 and r.completed_at is not None and r.completed_at < now - self._completed_ttl:
                    stale.append(rid)
            elif self._pending_ttl > 0 and r.created_at < now - self._pending_ttl:
                stale.append(rid)
        for rid in stale:
            del self._requests[rid]
        if stale:
            logger.debug("清理过期中继请求 %d 条", len(stale))


_relay_queue: Optional[RelayQueue] = None


def get_relay_queue() -> RelayQueue:
    """进程内共享的中继队列（懒加载）"""
    global _relay_queue
    if _relay_queue is None:
        _relay_queue = RelayQueue()
    return _relay_queue
