"""变更通知 —— 表写入后的全局广播。

任何一张表 ``save()`` 之后都会触发一次无负载的广播，订阅者（Web 层、
定时任务等）据此重新读取数据。监听者之间的调用顺序不做保证。
"""
from typing import Callable, List

from loguru import logger

ChangeListener = Callable[[], None]


class ChangeNotifier:
    """变更广播器

    使用方式：
        ```python
        notifier = ChangeNotifier()
        notifier.subscribe(refresh_view)
        notifier.emit()
        notifier.unsubscribe(refresh_view)
        ```
    """

    def __init__(self) -> None:
        self._listeners: List[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        """注册监听者，重复注册同一回调只保留一份"""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        """注销监听者，未注册时忽略"""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self) -> None:
        """通知所有监听者

        单个监听者抛出的异常只记录日志，不影响其他监听者和写入方。
        """
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.warning(f"变更监听者执行出错: {e}")

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
